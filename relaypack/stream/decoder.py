"""JSON line decoding with fail-fast or lenient failure accounting."""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from typing import Any

from relaypack.core.models import MAX_PARSE_FAILURE_SAMPLES
from relaypack.core.records import DecodedRecord
from relaypack.stream.exceptions import StreamParseError

logger = logging.getLogger(__name__)

_SAMPLE_LENGTH = 200


@dataclass(frozen=True, slots=True)
class ParsePolicy:
    """Whether a malformed line aborts parsing or is skipped and counted."""

    fail_fast: bool = True


class RecordDecoder:
    """Decodes lines into records and keeps failure statistics for one parse."""

    def __init__(self, policy: ParsePolicy | None = None) -> None:
        self.policy = policy or ParsePolicy()
        self.failure_count = 0
        self.failure_samples: list[str] = []

    def decode(self, line: str, context: str) -> list[DecodedRecord] | None:
        """Decode one JSON payload.

        Objects yield a single record, arrays of objects yield one record
        per element. Any other payload is one failure for the whole line;
        ``None`` is returned when it was rejected in lenient mode.
        """
        try:
            decoded = json.loads(line)
        except json.JSONDecodeError as error:
            self._on_failure(f"{context}: {error}", line)
            return None

        if isinstance(decoded, dict):
            return [DecodedRecord(decoded)]
        if not isinstance(decoded, list):
            self._on_failure(f"{context}: expected JSON object or array", line)
            return None

        if not all(isinstance(entry, dict) for entry in decoded):
            self._on_failure(f"{context}: expected JSON object entries", line)
            return None
        return [DecodedRecord(entry) for entry in decoded]

    def _on_failure(self, context: str, payload: Any) -> None:
        sample = normalize_malformed_payload(payload)
        self.failure_count += 1
        if len(self.failure_samples) < MAX_PARSE_FAILURE_SAMPLES:
            self.failure_samples.append(sample)
        if self.policy.fail_fast:
            raise StreamParseError(context, sample)
        logger.warning("skipping malformed payload (%s): %s", context, sample)


def normalize_malformed_payload(payload: Any) -> str:
    """Render a rejected payload as a short, trimmed diagnostic sample."""
    if isinstance(payload, str):
        return payload.strip()[:_SAMPLE_LENGTH]
    try:
        encoded = json.dumps(payload, ensure_ascii=False)
    except (TypeError, ValueError):
        return "<unserializable>"
    return encoded.strip()[:_SAMPLE_LENGTH]
