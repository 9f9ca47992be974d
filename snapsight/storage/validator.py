from snapsight.errors import InvalidFileError

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def validate_png(data: bytes, max_bytes: int) -> None:
    """Reject buffers that are not PNG or are larger than ``max_bytes``.

    Raises:
        InvalidFileError: on either violation.
    """
    if len(data) < len(PNG_SIGNATURE) or data[: len(PNG_SIGNATURE)] != PNG_SIGNATURE:
        raise InvalidFileError("Invalid file format, expected PNG", phase="validate")
    if len(data) > max_bytes:
        raise InvalidFileError(
            f"File too large: {len(data)} bytes (max {max_bytes})", phase="validate"
        )
