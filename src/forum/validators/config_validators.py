"""Normalizers applied to raw environment values before Settings validates them."""


def normalize_log_level(value: str | None) -> str | None:
    # "debug " -> "DEBUG", so the Literal check accepts any spelling
    if value is None:
        return None
    return value.strip().upper()


def normalize_log_format(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip().lower()


def normalize_base_url(value: str | None) -> str | None:
    """
    Drop surrounding whitespace and trailing slashes from a base URL, so links are
    built as f"{host}/conversations/{id}" without doubled slashes.
    """
    if value is None:
        return None
    return value.strip().rstrip("/")


def ensure_non_negative(value: int) -> int:
    if value < 0:
        raise ValueError("must be zero or positive")
    return value
