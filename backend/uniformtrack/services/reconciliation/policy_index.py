"""Policy Index - lookup and removal over a school's uniform policy list.

Policies are matched to students by exact, case-sensitive comparison of
level and gender. Only the catalog filter used when creating policies
(``eligible_uniforms``) normalizes case; that asymmetry is kept as-is.

Removal works on a ``PolicyRef``:
- ``ById``: stored policies that carry an id match on id; stored policies
  without one fall back to the referenced policy's composite key.
- ``ByComposite``: every policy with the same (uniform_id, level, gender)
  matches. Used for legacy records that were saved without an id.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Union

from uniformtrack.schemas.school import Policy
from uniformtrack.schemas.uniform import Uniform

GroupKey = Tuple[str, str]  # (level, gender)

# Catalog gender spellings accepted for each student gender group
GENDER_ALIASES = {
    "boys": {"boys", "male", "unisex"},
    "girls": {"girls", "female", "unisex"},
}


@dataclass(frozen=True)
class ByComposite:
    """Reference a policy by (uniform_id, level, gender)."""

    uniform_id: str
    level: str
    gender: str

    def matches(self, policy: Policy) -> bool:
        return (
            policy.uniform_id == self.uniform_id
            and policy.level == self.level
            and policy.gender == self.gender
        )


@dataclass(frozen=True)
class ById:
    """Reference a policy by id, carrying its composite key for legacy rows."""

    policy_id: str
    composite: ByComposite


PolicyRef = Union[ById, ByComposite]


def composite_key(policy: Policy) -> ByComposite:
    return ByComposite(policy.uniform_id, policy.level, policy.gender)


def policy_ref(policy: Policy) -> PolicyRef:
    """Build the reference used to remove *policy* later."""
    if policy.id:
        return ById(policy.id, composite_key(policy))
    return composite_key(policy)


def build_index(policies: Iterable[Policy]) -> Dict[GroupKey, List[Policy]]:
    """Group policies by (level, gender), keeping duplicates and order."""
    index: Dict[GroupKey, List[Policy]] = {}
    for policy in policies or ():
        index.setdefault((policy.level, policy.gender), []).append(policy)
    return index


def resolve_policy(index: Dict[GroupKey, List[Policy]], level: str, gender: str) -> List[Policy]:
    """All policies whose level and gender equal the arguments exactly."""
    return list(index.get((level, gender), ()))


def applicable_policies(policies: Iterable[Policy], level: str, gender: str) -> List[Policy]:
    return resolve_policy(build_index(policies), level, gender)


def unique_policy_groups(policies: Iterable[Policy]) -> List[Policy]:
    """One policy per (uniform_id, level, gender); the first one seen wins."""
    groups: Dict[ByComposite, Policy] = {}
    for policy in policies or ():
        groups.setdefault(composite_key(policy), policy)
    return list(groups.values())


def _matches(policy: Policy, ref: PolicyRef) -> bool:
    if isinstance(ref, ById):
        if policy.id:
            return policy.id == ref.policy_id
        return ref.composite.matches(policy)
    if isinstance(ref, ByComposite):
        return ref.matches(policy)
    raise TypeError(f"Unsupported policy reference: {ref!r}")


def remove_policy(policies: Iterable[Policy], ref: PolicyRef) -> List[Policy]:
    """Return the policy list without the entries *ref* matches."""
    return [policy for policy in policies or () if not _matches(policy, ref)]


def find_policy(policies: Iterable[Policy], policy_id: str) -> Optional[Policy]:
    for policy in policies or ():
        if policy.id == policy_id:
            return policy
    return None


def eligible_uniforms(
    uniforms: Iterable[Uniform],
    school_id: Optional[str],
    level: str,
    gender: str,
) -> List[Uniform]:
    """Catalog uniforms that can be added to a (level, gender) policy group.

    Missing school, gender or level on a uniform means it fits any value.
    Gender and level are compared case-insensitively here, and catalog
    genders "male"/"female"/"unisex" map onto the student groups.
    """
    target_gender = (gender or "").lower()
    accepted_genders = GENDER_ALIASES.get(target_gender, {target_gender})
    target_level = (level or "").upper()

    eligible = []
    for uniform in uniforms:
        if uniform.school_id and uniform.school_id != school_id:
            continue
        if uniform.gender and uniform.gender.lower() not in accepted_genders:
            continue
        if uniform.level and uniform.level.upper() != target_level:
            continue
        eligible.append(uniform)
    return eligible
