"""Per-user feature gates.

The flag set is total over :class:`Feature`: ``FeatureFlagSet`` is a total
TypedDict so a type checker rejects an evaluator missing a flag, and the
import-time check below refuses to start when the evaluator and the feature
universe disagree.
"""

from collections.abc import Collection
from enum import Enum

from typing_extensions import TypedDict

from walletgraph import log


class Feature(str, Enum):
    STRIPE_ENABLED = "STRIPE_ENABLED"
    PRIMARY_PUBKEY_ENABLED = "PRIMARY_PUBKEY_ENABLED"
    SWAP_FEES_ENABLED = "SWAP_FEES_ENABLED"
    DROPZONE_ENABLED = "DROPZONE_ENABLED"
    STICKER_ENABLED = "STICKER_ENABLED"
    BARTER_ENABLED = "BARTER_ENABLED"


class FeatureFlagSet(TypedDict):
    STRIPE_ENABLED: bool
    PRIMARY_PUBKEY_ENABLED: bool
    SWAP_FEES_ENABLED: bool
    DROPZONE_ENABLED: bool
    STICKER_ENABLED: bool
    BARTER_ENABLED: bool


class UnknownFeatureError(ValueError):
    """Raised when the evaluator and the feature universe are out of sync.

    This is a configuration error of the deployment and is raised while the
    module is imported, never while serving a request.
    """


def evaluate(user_id: str | None, dropzone_cohort: Collection[str]) -> FeatureFlagSet:
    """Evaluate every feature gate for ``user_id``.

    Args:
        user_id: The authenticated user, None for anonymous requests
        dropzone_cohort: Ids of the users eligible for dropzones

    Returns:
        One flag per known feature
    """
    return {
        "STRIPE_ENABLED": True,
        "PRIMARY_PUBKEY_ENABLED": True,
        "SWAP_FEES_ENABLED": False,
        "DROPZONE_ENABLED": bool(user_id) and user_id in dropzone_cohort,
        "STICKER_ENABLED": True,
        "BARTER_ENABLED": False,
    }


def is_enabled(flags: FeatureFlagSet, feature: Feature) -> bool:
    return flags[feature.value]  # type: ignore[literal-required]


def check_feature_universe() -> None:
    """Verify that the evaluator covers exactly the known features.

    Raises:
        UnknownFeatureError: If a feature is missing from, or unknown to, the evaluator
    """
    universe = {feature.value for feature in Feature}
    declared = set(FeatureFlagSet.__annotations__)
    evaluated = set(evaluate(None, ()))

    for name, keys in (("FeatureFlagSet", declared), ("evaluate()", evaluated)):
        missing = universe - keys
        unknown = keys - universe
        if missing or unknown:
            raise UnknownFeatureError(
                f"{name} does not match the feature universe: missing {sorted(missing)}, unknown {sorted(unknown)}"
            )

    log.debug(f"Feature universe checked: {sorted(universe)}")


check_feature_universe()
