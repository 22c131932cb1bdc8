"""Streaming feature extraction activity.

Delimits the Feature objects of a GeoJSON FeatureCollection while reading
the file one line at a time, so memory stays proportional to the current
feature's text and never to the file size.

The extractor exploits the known shape of the input rather than parsing
JSON generically:

- ``PREAMBLE``: lines before the one containing both ``"features":`` and
  ``[`` are only sampled for property names, never parsed. Text after the
  ``[`` on the marker line is scanned as feature content.
- ``IN_FEATURES``: a brace-depth counter runs over ``{`` and ``}``. When
  depth returns to 0 the accumulated text is one candidate object; it is
  parsed once with ``json.loads`` and emitted only if its ``type`` is
  ``"Feature"``. Malformed candidates are counted and skipped.
- ``DONE``: entered when a line, trimmed, is ``]``, ``],`` or ``]}`` while
  no object is open. Remaining lines are counted and ignored.

Size ceiling: when an open object's text grows past ``max_feature_chars``
the accumulator is discarded and depth is reset to 0. The ceiling is
checked at every line boundary and when an object closes. This is a lossy
safeguard against mis-delimited input, not a recovery mechanism.

Scanning modes:
    By default braces are counted everywhere, including inside string
    values, so a quoted ``{`` or ``}`` corrupts depth tracking. The inputs
    are machine-generated dumps where this does not occur. Pass
    ``string_aware=True`` to track string literals and escapes and ignore
    braces inside them.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

from geojson_chunker.core.constants import (
    DEFAULT_MAX_FEATURE_CHARS,
    PREAMBLE_PROPERTY_SAMPLE_LIMIT,
)

logger = logging.getLogger("geojson_chunker.activities.extract_features")

FEATURES_KEY = '"features":'
ARRAY_END_LINES = frozenset({"]", "],", "]}"})

_BRACE_RE = re.compile(r"[{}]")
_STRING_AWARE_RE = re.compile(r'[{}"\\]')
_PROPERTY_NAME_RE = re.compile(r'"([^"]+)":')


class ExtractorState(Enum):
    """Position of the extractor relative to the features array."""

    PREAMBLE = "preamble"
    IN_FEATURES = "in_features"
    DONE = "done"


@dataclass(slots=True)
class ExtractionStats:
    """Running counters of one extraction pass.

    Attributes:
        lines_read: Lines fed to the extractor.
        objects_delimited: Balanced ``{...}`` spans found in the array.
        features_emitted: Candidates emitted as Feature dicts.
        malformed: Candidates that failed to parse, plus an object left
            open at end of input.
        not_feature: Parsed candidates whose ``type`` is not ``"Feature"``.
        oversized: Candidates discarded by the size ceiling.
    """

    lines_read: int = 0
    objects_delimited: int = 0
    features_emitted: int = 0
    malformed: int = 0
    not_feature: int = 0
    oversized: int = 0


class StreamingFeatureExtractor:
    """Line-fed extractor of the Feature objects in a FeatureCollection.

    One instance handles exactly one input stream and is not shared.

    Args:
        max_feature_chars: Ceiling on a single object's text.
        string_aware: Ignore braces inside JSON string literals.
        source: Label used in log messages (region code or file name).
    """

    def __init__(
        self,
        *,
        max_feature_chars: int = DEFAULT_MAX_FEATURE_CHARS,
        string_aware: bool = False,
        source: str = "",
    ) -> None:
        if max_feature_chars <= 0:
            msg = f"max_feature_chars must be > 0, got {max_feature_chars}"
            raise ValueError(msg)
        self.max_feature_chars = max_feature_chars
        self.string_aware = string_aware
        self.source = source
        self.state = ExtractorState.PREAMBLE
        self.stats = ExtractionStats()
        self._property_sample: dict[str, None] = {}
        self._depth = 0
        self._parts: list[str] = []
        self._buffered = 0
        self._in_string = False
        self._escaped = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def property_sample(self) -> list[str]:
        """Top-level property names seen before the features array."""
        return list(self._property_sample)

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def buffered_chars(self) -> int:
        """Characters held for the currently open object."""
        return self._buffered

    def iter_features(self, lines: Iterable[str]) -> Iterator[dict[str, Any]]:
        """Yield every Feature dict found in *lines*, in document order."""
        for line in lines:
            yield from self.feed_line(line)
        self.finish()

    def feed_line(self, line: str) -> list[dict[str, Any]]:
        """Consume one line and return the Features it completes."""
        self.stats.lines_read += 1
        text = line.rstrip("\r\n")

        if self.state is ExtractorState.DONE:
            return []

        if self.state is ExtractorState.PREAMBLE:
            marker = text.find(FEATURES_KEY)
            if marker == -1 or "[" not in text:
                self._sample_property_name(text)
                return []
            self.state = ExtractorState.IN_FEATURES
            logger.debug(
                "Features array found | source=%s | line=%d",
                self.source,
                self.stats.lines_read,
            )
            bracket = text.find("[", marker)
            if bracket == -1:
                return []
            text = text[bracket + 1 :]
        elif self._depth == 0 and text.strip() in ARRAY_END_LINES:
            self.state = ExtractorState.DONE
            logger.debug(
                "Features array closed | source=%s | line=%d | features=%d",
                self.source,
                self.stats.lines_read,
                self.stats.features_emitted,
            )
            return []

        if self.string_aware:
            return self._scan_string_aware(text)
        return self._scan_braces(text)

    def finish(self) -> None:
        """Signal end of input. An object still open is counted as malformed."""
        if self._depth > 0:
            logger.debug(
                "Unterminated object at end of input | source=%s | chars=%d",
                self.source,
                self._buffered,
            )
            self.stats.malformed += 1
            self._reset_object()

    # ------------------------------------------------------------------
    # Scanners
    # ------------------------------------------------------------------

    def _scan_braces(self, text: str) -> list[dict[str, Any]]:
        emitted: list[dict[str, Any]] = []
        start = 0
        for match in _BRACE_RE.finditer(text):
            index = match.start()
            if match.group() == "{":
                if self._depth == 0:
                    start = index
                self._depth += 1
            elif self._depth > 0:
                self._depth -= 1
                if self._depth == 0:
                    self._close_object(text[start : index + 1], emitted)
        self._carry_over(text, start)
        return emitted

    def _scan_string_aware(self, text: str) -> list[dict[str, Any]]:
        emitted: list[dict[str, Any]] = []
        start = 0
        skip_to = 0
        if self._escaped:
            # The escaped character opens this line.
            self._escaped = False
            skip_to = 1
        for match in _STRING_AWARE_RE.finditer(text):
            index = match.start()
            if index < skip_to:
                continue
            char = match.group()
            if self._in_string:
                if char == "\\":
                    if index + 1 < len(text):
                        skip_to = index + 2
                    else:
                        self._escaped = True
                elif char == '"':
                    self._in_string = False
                continue
            if char == '"':
                if self._depth > 0:
                    self._in_string = True
            elif char == "{":
                if self._depth == 0:
                    start = index
                self._depth += 1
            elif char == "}" and self._depth > 0:
                self._depth -= 1
                if self._depth == 0:
                    self._close_object(text[start : index + 1], emitted)
        self._carry_over(text, start)
        return emitted

    def _carry_over(self, text: str, start: int) -> None:
        """Buffer the tail of a line that belongs to a still-open object."""
        if self._depth == 0:
            return
        # start is 0 when the object was opened on an earlier line.
        self._append(text[start:])
        self._append("\n")
        if self._buffered > self.max_feature_chars:
            self._drop_oversized()

    # ------------------------------------------------------------------
    # Candidate handling
    # ------------------------------------------------------------------

    def _close_object(self, tail: str, emitted: list[dict[str, Any]]) -> None:
        self._append(tail)
        if self._buffered > self.max_feature_chars:
            self._drop_oversized()
            return

        candidate = "".join(self._parts)
        self._reset_object()
        self.stats.objects_delimited += 1

        feature = self._parse_candidate(candidate)
        if feature is not None:
            self.stats.features_emitted += 1
            emitted.append(feature)

    def _parse_candidate(self, candidate: str) -> dict[str, Any] | None:
        cleaned = candidate.rstrip()
        if cleaned.endswith(","):
            cleaned = cleaned[:-1]
        try:
            parsed = json.loads(cleaned)
        except (ValueError, RecursionError):
            self.stats.malformed += 1
            return None
        if not isinstance(parsed, dict) or parsed.get("type") != "Feature":
            self.stats.not_feature += 1
            return None
        return parsed

    def _drop_oversized(self) -> None:
        logger.warning(
            "Oversized feature discarded | source=%s | line=%d | chars=%d | limit=%d",
            self.source,
            self.stats.lines_read,
            self._buffered,
            self.max_feature_chars,
        )
        self.stats.oversized += 1
        self._reset_object()

    def _append(self, fragment: str) -> None:
        self._parts.append(fragment)
        self._buffered += len(fragment)

    def _reset_object(self) -> None:
        self._parts = []
        self._buffered = 0
        self._depth = 0
        self._in_string = False
        self._escaped = False

    def _sample_property_name(self, text: str) -> None:
        if len(self._property_sample) >= PREAMBLE_PROPERTY_SAMPLE_LIMIT:
            return
        match = _PROPERTY_NAME_RE.search(text)
        if match:
            self._property_sample.setdefault(match.group(1), None)
