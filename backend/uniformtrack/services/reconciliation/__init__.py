"""Reconciliation core: pure functions over policies, logs and batch stock."""

from uniformtrack.services.reconciliation.policy_index import (
    ById,
    ByComposite,
    PolicyRef,
    build_index,
    eligible_uniforms,
    policy_ref,
    remove_policy,
    resolve_policy,
)
from uniformtrack.services.reconciliation.log_aggregator import LogAggregate, aggregate
from uniformtrack.services.reconciliation.deficit_calculator import (
    compute_requirements,
    compute_school_deficit_report,
    compute_school_stats,
    compute_student_deficit,
)
from uniformtrack.services.reconciliation.stock_allocator import (
    VariantKey,
    batch_summary,
    check_stock,
    deduct,
    low_stock,
    plan_allocation,
)

__all__ = [
    "ById",
    "ByComposite",
    "PolicyRef",
    "build_index",
    "eligible_uniforms",
    "policy_ref",
    "remove_policy",
    "resolve_policy",
    "LogAggregate",
    "aggregate",
    "compute_requirements",
    "compute_school_deficit_report",
    "compute_school_stats",
    "compute_student_deficit",
    "VariantKey",
    "batch_summary",
    "check_stock",
    "deduct",
    "low_stock",
    "plan_allocation",
]
