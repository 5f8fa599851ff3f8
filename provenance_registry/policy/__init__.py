"""
Policy module for the Provenance Registry.

Provides the pure certificate transition gate.
"""

from .certificate_gate import (
    STATUS_RANK,
    InitialCertificate,
    can_transition,
    check_claim_role,
    check_claim_status,
    check_verify_owner,
    check_verify_role,
    check_verify_status,
    initial_certificate,
)

__all__ = [
    "STATUS_RANK",
    "InitialCertificate",
    "can_transition",
    "check_claim_role",
    "check_claim_status",
    "check_verify_owner",
    "check_verify_role",
    "check_verify_status",
    "initial_certificate",
]
