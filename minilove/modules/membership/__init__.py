"""Membership plans package exports."""

from .models import MembershipPlan

__all__ = ["MembershipPlan"]
