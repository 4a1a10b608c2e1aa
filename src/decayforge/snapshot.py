# src/decayforge/snapshot.py
"""
Versioned export/import blob for a DoseTracker.

    {"version": "1.0",
     "state": {"configuration": {...}, "event_log": [...]},
     "exported_at": "<iso timestamp>"}

Readers check `version` before trusting the shape of `state`.
"""
import logging
from datetime import datetime
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from .errors import InvalidArgument

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.0"
SUPPORTED_VERSIONS = frozenset({SNAPSHOT_VERSION})


class ConfigurationModel(BaseModel):
    domain: str
    body_weight: float = Field(gt=0)
    metabolism: Literal["fast", "typical", "slow"]


class DoseEventModel(BaseModel):
    amount: float = Field(ge=0, allow_inf_nan=False)
    occurred_at: datetime
    source: str = "unknown"
    recorded_at: Optional[datetime] = None


class StateModel(BaseModel):
    configuration: ConfigurationModel
    event_log: list[DoseEventModel] = Field(default_factory=list)


class SnapshotModel(BaseModel):
    version: str
    state: StateModel
    exported_at: datetime


def parse_snapshot(blob: Mapping[str, Any]) -> SnapshotModel:
    """
    Validate an exported blob. The version tag is checked first so an
    unknown format is rejected before its state is interpreted.
    """
    if not isinstance(blob, Mapping):
        raise InvalidArgument(f"Snapshot must be a mapping (got {type(blob).__name__}).")
    version = blob.get("version")
    if not isinstance(version, str) or version not in SUPPORTED_VERSIONS:
        logger.warning("Rejected snapshot with unsupported version", extra={"version": version})
        raise InvalidArgument(
            f"Unsupported snapshot version {version!r}; expected one of {sorted(SUPPORTED_VERSIONS)}"
        )
    try:
        return SnapshotModel.model_validate(blob)
    except ValidationError as exc:
        logger.warning("Rejected malformed snapshot", extra={"errors": exc.error_count()})
        raise InvalidArgument(f"Malformed snapshot: {exc}") from exc
