"""Message Decoder - Extract text from NSAttributedString binary data

Newer macOS versions leave ``message.text`` empty and store the body only in
the ``attributedBody`` blob, a typedstream-archived NSAttributedString. This
module recovers the plain text with a two-stage heuristic:

1. Marker-delimited extraction. The blob is read as UTF-8 (invalid bytes
   replaced), cut before ``NSNumber``, after ``NSString`` and before
   ``NSDictionary``. The remaining span carries 6 leading and 12 trailing
   length/type-tag characters around the text.
2. NUL-delimited fallback. ``NSString`` followed by a NUL-terminated run.

It is not a parser for the archive format. Blobs that happen to contain the
marker strings in a different role can produce garbage.
"""

import enum
import logging
import threading
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)

NUMBER_MARKER = "NSNumber"
STRING_MARKER = "NSString"
DICTIONARY_MARKER = "NSDictionary"

# Observed layout constants. Do not tune without real sample data.
MIN_CANDIDATE_SPAN_LENGTH = 18
LEADING_ARTIFACT_LENGTH = 6
TRAILING_ARTIFACT_LENGTH = 12

NUL = "\x00"


class DecodeOutcome(enum.Enum):
    """Where decoding of a single blob ended up"""

    EMPTY_INPUT = "empty_input"
    MISSING_NUMBER_MARKER = "missing_number_marker"
    MISSING_STRING_MARKER = "missing_string_marker"
    MISSING_DICTIONARY_MARKER = "missing_dictionary_marker"
    SPAN_TOO_SHORT = "span_too_short"
    EMPTY_AFTER_STRIP = "empty_after_strip"
    STAGE_ONE = "stage_one"
    STAGE_TWO = "stage_two"
    NO_MATCH = "no_match"
    DECODE_ERROR = "decode_error"

    @property
    def succeeded(self) -> bool:
        return self in (DecodeOutcome.STAGE_ONE, DecodeOutcome.STAGE_TWO)


@dataclass(frozen=True)
class DecodeResult:
    """Decoded text plus the diagnostic path that produced it"""

    text: Optional[str]
    outcome: DecodeOutcome
    # Stage-1 exit reason when stage 2 ran, None otherwise
    stage_one_checkpoint: Optional[DecodeOutcome] = None


def decode_blob_text(data: bytes) -> str:
    """Decode the whole blob as UTF-8, replacing invalid sequences."""
    return bytes(data).decode("utf-8", errors="replace")


def has_number_marker(text: str) -> bool:
    return NUMBER_MARKER in text


def has_string_marker(text: str) -> bool:
    return STRING_MARKER in text


def has_dictionary_marker(text: str) -> bool:
    return DICTIONARY_MARKER in text


def candidate_span_long_enough(span: str) -> bool:
    """A span must be longer than 18 characters to survive artifact stripping."""
    return len(span) > MIN_CANDIDATE_SPAN_LENGTH


def strip_artifacts(span: str) -> str:
    """Drop the fixed-width tag characters around the text and trim whitespace."""
    return span[LEADING_ARTIFACT_LENGTH:-TRAILING_ARTIFACT_LENGTH].strip()


def extract_marker_delimited(text: str) -> DecodeResult:
    """
    Stage 1: isolate the text between the NSString and NSDictionary markers.

    Returns a result whose outcome is STAGE_ONE on success, EMPTY_AFTER_STRIP
    when every check passed but nothing was left, or the checkpoint that
    failed otherwise.
    """
    if not has_number_marker(text):
        return DecodeResult(None, DecodeOutcome.MISSING_NUMBER_MARKER)
    prefix = text.split(NUMBER_MARKER, 1)[0]

    if not has_string_marker(prefix):
        return DecodeResult(None, DecodeOutcome.MISSING_STRING_MARKER)
    remainder = prefix.split(STRING_MARKER, 1)[1]

    if not has_dictionary_marker(remainder):
        return DecodeResult(None, DecodeOutcome.MISSING_DICTIONARY_MARKER)
    span = remainder.split(DICTIONARY_MARKER, 1)[0]

    if not candidate_span_long_enough(span):
        return DecodeResult(None, DecodeOutcome.SPAN_TOO_SHORT)

    extracted = strip_artifacts(span)
    if not extracted:
        return DecodeResult(None, DecodeOutcome.EMPTY_AFTER_STRIP)
    return DecodeResult(extracted, DecodeOutcome.STAGE_ONE)


def extract_nul_delimited(text: str) -> Optional[str]:
    """
    Stage 2: text following the first NUL after an NSString marker.

    Same result as the first match of ``NSString[^\\x00]*?\\x00([^\\x00]+)``
    in one forward pass. All markers before a given NUL share that NUL, so
    a NUL followed by another NUL (or the end) is skipped once.
    """
    start = 0
    while True:
        marker = text.find(STRING_MARKER, start)
        if marker == -1:
            return None

        nul = text.find(NUL, marker + len(STRING_MARKER))
        if nul == -1:
            return None

        run_start = nul + 1
        if run_start < len(text) and text[run_start] != NUL:
            run_end = text.find(NUL, run_start)
            if run_end == -1:
                run_end = len(text)
            return text[run_start:run_end].strip() or None

        start = run_start


def diagnose(attributed_body: Optional[bytes]) -> DecodeResult:
    """
    Decode an attributedBody blob and report which checkpoint decided it.

    Never raises.
    """
    if not attributed_body:
        return DecodeResult(None, DecodeOutcome.EMPTY_INPUT)

    try:
        text = decode_blob_text(attributed_body)

        stage_one = extract_marker_delimited(text)
        if stage_one.outcome in (DecodeOutcome.STAGE_ONE, DecodeOutcome.EMPTY_AFTER_STRIP):
            return stage_one

        extracted = extract_nul_delimited(text)
        if extracted:
            return DecodeResult(extracted, DecodeOutcome.STAGE_TWO, stage_one.outcome)
        return DecodeResult(None, DecodeOutcome.NO_MATCH, stage_one.outcome)

    except Exception as e:
        logger.debug(f"attributedBody decode failed: {type(e).__name__}")
        return DecodeResult(None, DecodeOutcome.DECODE_ERROR)


def decode(attributed_body: Optional[bytes]) -> Optional[str]:
    """
    Extract the plain text of a message from its attributedBody blob.

    Args:
        attributed_body: Binary data from the attributedBody column, or None

    Returns:
        Trimmed, non-empty text, or None when nothing could be recovered
    """
    return diagnose(attributed_body).text


class AttributedBodyDecoder:
    """Decodes attributedBody blobs and keeps extraction statistics"""

    def __init__(self):
        self._lock = threading.Lock()
        self.decode_success_count = 0
        self.decode_failure_count = 0
        self.outcome_counts: Counter = Counter()

    def decode_attributed_body(self, attributed_body: Optional[bytes]) -> Optional[str]:
        """
        Decode NSAttributedString binary data to extract message text.

        Args:
            attributed_body: Binary data from attributedBody column

        Returns:
            Decoded text string or None if decoding fails
        """
        result = diagnose(attributed_body)
        with self._lock:
            self.outcome_counts[result.outcome] += 1
            if result.outcome.succeeded:
                self.decode_success_count += 1
            elif result.outcome is not DecodeOutcome.EMPTY_INPUT:
                self.decode_failure_count += 1

        if not result.outcome.succeeded and result.outcome is not DecodeOutcome.EMPTY_INPUT:
            size = len(attributed_body) if attributed_body else 0
            logger.debug(
                f"No text recovered from attributedBody of length {size}: "
                f"{result.outcome.value}"
                + (
                    f" (stage 1 stopped at {result.stage_one_checkpoint.value})"
                    if result.stage_one_checkpoint
                    else ""
                )
            )

        return result.text

    def get_decode_stats(self) -> Dict[str, object]:
        """Get decoding statistics"""
        with self._lock:
            success = self.decode_success_count
            failure = self.decode_failure_count
            outcomes = {outcome.value: count for outcome, count in self.outcome_counts.items()}

        total = success + failure
        success_rate = (success / total * 100) if total > 0 else 0

        return {
            "success_count": success,
            "failure_count": failure,
            "total_attempts": total,
            "success_rate_percent": round(success_rate, 2),
            "outcomes": outcomes,
        }

    def reset_stats(self):
        """Reset decoding statistics"""
        with self._lock:
            self.decode_success_count = 0
            self.decode_failure_count = 0
            self.outcome_counts.clear()


def extract_message_text(
    text: Optional[str],
    attributed_body: Optional[bytes],
    decoder: Optional[AttributedBodyDecoder] = None,
) -> Optional[str]:
    """
    Resolve message text with fallback to the attributedBody blob.

    Args:
        text: Text from the text column
        attributed_body: Binary data from attributedBody column
        decoder: Decoder whose statistics should record the attempt

    Returns:
        The text column when it is non-empty, otherwise the decoded blob
    """
    if text:
        return text

    if attributed_body:
        if decoder is not None:
            return decoder.decode_attributed_body(attributed_body)
        return decode(attributed_body)

    return None
