"""Member services."""

from mlm_tree.services.member.registration import MemberRegistrationService


__all__ = ["MemberRegistrationService"]
