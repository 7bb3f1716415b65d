"""Policy Service - add, remove and list a school's uniform policies."""

import logging
from typing import List, Optional

from uniformtrack.core.exceptions import NotFoundError, ValidationError
from uniformtrack.models.school import new_id
from uniformtrack.schemas.school import (
    GENDERS,
    LEVELS,
    Policy,
    PolicyCreate,
    PolicyRemoveRequest,
    School,
)
from uniformtrack.schemas.uniform import Uniform
from uniformtrack.services.reconciliation.policy_index import (
    ByComposite,
    PolicyRef,
    eligible_uniforms,
    find_policy,
    policy_ref,
    remove_policy,
)
from uniformtrack.services.store import DocumentStore

logger = logging.getLogger(__name__)


def _read_version(school: School, expected_version: Optional[int]) -> int:
    """Version the new list must be written against.

    The list is built from *school*, so without a caller version the write is
    still pinned to the one that was read.
    """
    return school.version if expected_version is None else expected_version


class PolicyService:
    """Service for maintaining the policy list a school owns."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def list_policies(
        self,
        school_id: str,
        level: Optional[str] = None,
        gender: Optional[str] = None,
    ) -> List[Policy]:
        policies = self.store.get_school(school_id).uniform_policy
        if level:
            policies = [p for p in policies if p.level == level]
        if gender:
            policies = [p for p in policies if p.gender == gender]
        return policies

    def add_policies(
        self,
        school_id: str,
        items: List[PolicyCreate],
        expected_version: Optional[int] = None,
    ) -> School:
        """Append new policies, each with a fresh id, in one policy-list write."""
        if not items:
            raise ValidationError("Select at least one uniform to add")

        school = self.store.get_school(school_id)
        added = []
        for item in items:
            if item.level not in LEVELS or item.gender not in GENDERS:
                raise ValidationError(f"Unsupported policy group {item.level}/{item.gender}")
            if item.quantity_per_student < 1:
                raise ValidationError("Quantity per student must be at least 1")

            uniform_name = item.uniform_name
            uniform_type = item.uniform_type
            if not uniform_name:
                uniform = self.store.get_uniform(item.uniform_id)
                uniform_name = uniform.name
                uniform_type = uniform_type or uniform.type

            added.append(Policy(
                id=new_id(),
                uniform_id=item.uniform_id,
                uniform_name=uniform_name,
                uniform_type=uniform_type,
                level=item.level,
                gender=item.gender,
                is_required=item.is_required,
                quantity_per_student=item.quantity_per_student,
            ))

        updated = self.store.update_policy_list(
            school_id,
            school.uniform_policy + added,
            expected_version=_read_version(school, expected_version),
        )
        logger.info("Added %d policies to school %s", len(added), school_id)
        return updated

    def resolve_ref(self, school: School, request: PolicyRemoveRequest) -> PolicyRef:
        """Turn a removal request into a policy reference.

        A policy id must name a stored policy. Without an id the full
        composite key is required.
        """
        if request.policy_id:
            policy = find_policy(school.uniform_policy, request.policy_id)
            if policy is None:
                raise NotFoundError("Policy", request.policy_id)
            return policy_ref(policy)

        if not (request.uniform_id and request.level and request.gender):
            raise ValidationError("Provide a policyId or uniformId, level and gender")
        return ByComposite(request.uniform_id, request.level, request.gender)

    def remove_policy(
        self,
        school_id: str,
        ref: PolicyRef,
        expected_version: Optional[int] = None,
    ) -> School:
        school = self.store.get_school(school_id)
        remaining = remove_policy(school.uniform_policy, ref)
        removed = len(school.uniform_policy) - len(remaining)
        if removed == 0:
            raise NotFoundError("Policy")

        updated = self.store.update_policy_list(
            school_id, remaining, expected_version=_read_version(school, expected_version)
        )
        logger.info("Removed %d policies from school %s (%r)", removed, school_id, ref)
        return updated

    def remove(self, school_id: str, request: PolicyRemoveRequest) -> School:
        school = self.store.get_school(school_id)
        ref = self.resolve_ref(school, request)
        return self.remove_policy(school_id, ref, expected_version=request.expected_version)

    def eligible_uniforms(self, school_id: str, level: str, gender: str) -> List[Uniform]:
        """Catalog uniforms that can be added to the (level, gender) group."""
        self.store.get_school(school_id)
        return eligible_uniforms(self.store.list_uniforms(), school_id, level, gender)
