"""Validation and normalization of raw search payloads.

Three shapes are accepted:

* a compiled payload, either a ``CombinedResult`` or a mapping whose
  ``comment`` equals ``COMPILED_MARKER``; its ``total`` must match the
  number of issues it carries,
* a raw single page, i.e. a mapping with an ``issues`` list and no marker,
* a bare list of issues.

Anything else raises ``ValidationError``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from jira_timeline.core.config import COMPILED_MARKER
from jira_timeline.core.errors import ValidationError
from jira_timeline.core.mappers import map_issues
from jira_timeline.core.models import CombinedResult, ValidatedDataset

logger = logging.getLogger(__name__)


def _unwrap(data: Any) -> tuple[list[Any], str | None, int | None]:
    if isinstance(data, CombinedResult):
        data = data.to_payload()

    if isinstance(data, Mapping):
        issues = data.get("issues")
        if data.get("comment") == COMPILED_MARKER:
            if not isinstance(issues, list):
                raise ValidationError("Compiled payload is missing its issues list")
            total = data.get("total")
            if total != len(issues):
                raise ValidationError(f"total ({total}) != len(issues) ({len(issues)})")
            return issues, data.get("query"), total
        if isinstance(issues, list):
            return issues, None, None
        raise ValidationError("Unrecognized data: missing compiled marker and/or issues")

    if isinstance(data, list | tuple):
        return list(data), None, None
    raise ValidationError(f"Unrecognized payload type: {type(data).__name__}")


def validate(data: Any) -> ValidatedDataset:
    """Check structural invariants and return a ValidatedDataset.

    Rules are applied in order: payload present, compiled total matches,
    history present on every issue, first issue exposes ``fields``.
    """
    if data is None or (isinstance(data, Mapping | list | tuple) and not data):
        raise ValidationError("Missing data")

    issues, query, total = _unwrap(data)

    # History mode is all-or-nothing across the dataset
    has_history = bool(issues) and all(
        isinstance(i, Mapping) and isinstance(i.get("changelog"), Mapping) for i in issues
    )

    if not issues or not isinstance(issues[0], Mapping) or not isinstance(issues[0].get("fields"), Mapping):
        raise ValidationError("Missing fields data")
    bad = [idx for idx, i in enumerate(issues) if not isinstance(i, Mapping) or not i.get("key")]
    if bad:
        raise ValidationError(f"Issues without a key at positions {bad[:5]}")

    records = map_issues(issues)
    if not has_history:
        # Mixed payloads are treated as history-less throughout
        for rec in records:
            rec.histories = None
    logger.debug("Validated %s issues (history=%s, query=%r)", len(records), has_history, query)
    return ValidatedDataset(
        issues=records,
        raw=list(issues),
        has_history=has_history,
        query=query,
        record_count=total if total is not None else len(records),
    )
