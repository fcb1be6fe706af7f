"""
Validator panel configuration
"""

from typing import Dict, List, Tuple

from .models import ValidatorCategory, ValidatorSpec

# Panel order is fixed: categories in this order, names in listed order.
DEFAULT_VALIDATORS: Dict[ValidatorCategory, Tuple[str, ...]] = {
    ValidatorCategory.LOGIC: (
        "Logical Consistency",
        "Causal Relationship",
        "Reasoning Validity",
        "Contradiction Detection",
    ),
    ValidatorCategory.FACT: (
        "Factual Accuracy",
        "Data Verification",
        "Statistical Analysis",
        "Source Verification",
    ),
    ValidatorCategory.CONTEXT: (
        "Context Appropriateness",
        "Historical Background",
        "Cultural Context",
        "Domain Expertise",
    ),
    ValidatorCategory.COMPREHENSIVE: (
        "Bias Detection",
        "Completeness",
        "Reliability",
        "Overall Assessment",
    ),
}


def build_panel(per_category: int = 4) -> List[ValidatorSpec]:
    """Ordered validator panel with ``per_category`` validators per category"""
    max_per_category = min(len(names) for names in DEFAULT_VALIDATORS.values())
    if not 1 <= per_category <= max_per_category:
        raise ValueError(f"per_category must be between 1 and {max_per_category}")

    return [
        ValidatorSpec(name=name, category=category)
        for category, names in DEFAULT_VALIDATORS.items()
        for name in names[:per_category]
    ]
