"""
Comment text sanitizer.

Dispatch narrative is full of machine-generated noise: shorthand
dispatch codes, DOR/NCIC response blocks, separator rules, banners. The
trigger evaluator runs keyword matches over the comment blob, so these
lines are dropped before the blob is built.

The denylist is an ordered tuple of named matchers. A line is dropped
when any matcher finds its pattern anywhere in the line (search
semantics, as REGEXP_LIKE); patterns anchor themselves where needed.

Blob construction is deterministic:
- lines sorted by (cdts, lin_grp, lin_ord), NULLs last
- NULL and denylisted lines dropped
- remaining lines joined with COMMENT_SEPARATOR
- result truncated to the first ``max_length`` characters
"""

import re
from dataclasses import dataclass, field
from itertools import groupby
from typing import Iterable, Sequence

from ..config import DEFAULT_COMMENT_MAX_LENGTH
from ..models.event import CommentBlob, CommentLine, EventKey

COMMENT_SEPARATOR = ' '


@dataclass(frozen=True)
class NoisePattern:
    """A named comment-noise rule."""

    name: str
    pattern: str
    description: str = ''
    _regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, '_regex', re.compile(self.pattern))

    def matches(self, line: str) -> bool:
        return self._regex.search(line) is not None


DEFAULT_NOISE_PATTERNS: tuple[NoisePattern, ...] = (
    NoisePattern(
        'dispatch_code_prefix',
        r'^[A-Z,/]{3,}(\s[A-Z]{2,})?(\s[A-Z]{2,})?:',
        'Shorthand all-caps dispatch code followed by a colon',
    ),
    NoisePattern(
        'slash_code_block',
        r'[A-Z,^0-9]{3,}/',
        'Slash-delimited code block',
    ),
    NoisePattern(
        'dor_response_end',
        r'END OF (K)?DOR RESPONSE',
        'End-of-response marker from DOR / KDOR queries',
    ),
    NoisePattern(
        'dash_rule',
        r'-{3,}',
        'Separator rule of repeated dashes',
    ),
    NoisePattern(
        'ten_code_banner',
        r'10-[0-9]{2} \*{2,}',
        'Ten-code annotation followed by asterisks',
    ),
    NoisePattern(
        'license_plate',
        r'LICENSE:',
        'License-plate announcement line',
    ),
    NoisePattern(
        'asterisk_banner',
        r'\*{3,}',
        'Asterisk-delimited banner',
    ),
    NoisePattern(
        'field_event',
        r'Field Event',
        'Field Event marker',
    ),
    NoisePattern(
        'event_held_banner',
        r'\*{2}\s?Event held for [0-9]+ minutes',
        '"** Event held for N minutes" banner',
    ),
)


class CommentSanitizer:
    """
    Filters comment lines against a denylist and builds comment blobs.

    Usage:
        sanitizer = CommentSanitizer()
        blobs = sanitizer.build_blobs(lines)
    """

    def __init__(
        self,
        patterns: Sequence[NoisePattern] = DEFAULT_NOISE_PATTERNS,
        max_length: int = DEFAULT_COMMENT_MAX_LENGTH,
        separator: str = COMMENT_SEPARATOR,
    ):
        self.patterns = tuple(patterns)
        self.max_length = max_length
        self.separator = separator

    def matching_pattern(self, line: str) -> NoisePattern | None:
        """Return the first denylist rule the line trips, if any."""
        for pattern in self.patterns:
            if pattern.matches(line):
                return pattern
        return None

    def is_noise(self, line: str | None) -> bool:
        if line is None:
            return True
        return self.matching_pattern(line) is not None

    def build_text(self, lines: Iterable[CommentLine]) -> str | None:
        """
        Concatenate the allowed lines of one event.

        Returns:
            The truncated blob, or None when no line survives filtering
        """
        ordered = sorted(lines, key=CommentLine.sort_key)
        kept = [line.comm for line in ordered if not self.is_noise(line.comm)]
        if not kept:
            return None
        return self.separator.join(kept)[: self.max_length]

    def build_blobs(self, lines: Iterable[CommentLine]) -> list[CommentBlob]:
        """Group lines by event key and build one blob per event with surviving text."""

        def event_of(line: CommentLine) -> tuple:
            return (line.eid, line.num_1, line.ad_ts)

        blobs = []
        for (eid, num_1, ad_ts), group in groupby(sorted(lines, key=event_of), key=event_of):
            text = self.build_text(group)
            if text is not None:
                blobs.append(
                    CommentBlob(key=EventKey(eid=eid, num_1=num_1, ad_ts=ad_ts), comments=text)
                )
        return blobs
