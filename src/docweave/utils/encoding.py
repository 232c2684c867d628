#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/utils/encoding.py
"""Character encoding detection and decoding for byte input.

Readers accept raw bytes. They are decoded as UTF-8 first (a leading BOM is
dropped); when that fails, chardet is asked for a guess and the guess is
used only above a confidence threshold. Bytes that survive neither step are
rejected rather than decoded with replacement characters.
"""

from __future__ import annotations

import logging
from typing import IO, Union

import chardet

from docweave.constants import ENCODING_CONFIDENCE_THRESHOLD, ENCODING_SAMPLE_SIZE
from docweave.exceptions import InvalidInputError

logger = logging.getLogger(__name__)


def detect_encoding(
    data: bytes,
    sample_size: int = ENCODING_SAMPLE_SIZE,
    confidence_threshold: float = ENCODING_CONFIDENCE_THRESHOLD,
) -> str | None:
    """Detect character encoding of binary data using chardet.

    Parameters
    ----------
    data : bytes
        Binary data to analyze
    sample_size : int, default 8192
        Number of bytes to sample for detection (uses first N bytes)
    confidence_threshold : float, default 0.7
        Minimum confidence level (0.0-1.0) required to trust detection

    Returns
    -------
    str | None
        Detected encoding name, or None when nothing was detected with
        enough confidence

    """
    sample = data[:sample_size]
    result = chardet.detect(sample)
    encoding = result.get("encoding") if result else None
    if not encoding:
        logger.debug("chardet: no encoding detected")
        return None

    confidence = result.get("confidence") or 0.0
    logger.debug("chardet detected encoding: %s (confidence: %.2f)", encoding, confidence)
    if confidence < confidence_threshold:
        logger.debug("chardet confidence %.2f below threshold %.2f", confidence, confidence_threshold)
        return None
    return encoding


def decode_bytes(data: bytes) -> str:
    """Decode ``data`` as UTF-8, falling back to chardet detection.

    Raises
    ------
    InvalidInputError
        If the bytes are not UTF-8 and no confident alternative decodes them

    """
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as utf8_error:
        logger.debug("Input is not valid UTF-8: %s", utf8_error)
        encoding = detect_encoding(data)
        if encoding:
            try:
                return data.decode(encoding)
            except (UnicodeDecodeError, LookupError) as e:
                raise InvalidInputError(
                    f"Could not decode input as {encoding}", parsing_stage="decoding", original_error=e
                ) from e
        raise InvalidInputError(
            "Input bytes are not valid UTF-8 and their encoding could not be detected",
            parsing_stage="decoding",
            original_error=utf8_error,
        ) from utf8_error


def read_stream(stream: Union[IO[bytes], IO[str]]) -> str:
    """Read a binary or text file-like object to text."""
    content = stream.read()
    if isinstance(content, bytes):
        return decode_bytes(content)
    if isinstance(content, str):
        return content
    raise TypeError(f"Stream read() returned unexpected type {type(content).__name__}. Expected bytes or str.")


def read_stream_bytes(stream: Union[IO[bytes], IO[str]], encoding: str = "utf-8") -> bytes:
    """Read a binary or text file-like object to bytes."""
    content = stream.read()
    if isinstance(content, bytes):
        return content
    if isinstance(content, str):
        return content.encode(encoding)
    raise TypeError(f"Stream read() returned unexpected type {type(content).__name__}. Expected bytes or str.")
