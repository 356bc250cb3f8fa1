"""
Key and format helpers for the storage provider.

Everything here is a pure function: no state, no I/O. The adapter uses
these to build request headers, the storage endpoint, object keys, and
human-readable size messages.
"""

SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB", "PB")

# Decimal convention: 1 KB = 1000 bytes, matching how the host reports sizes
BYTES_PER_KILOBYTE = 1000


def bearer_token(api_key: str) -> str:
    """Format an API key as an Authorization header value."""
    return f"Bearer {api_key}"


def storage_endpoint(api_url: str) -> str:
    """
    Build the storage REST endpoint for a project URL.

    A trailing slash on ``api_url`` is passed through as-is, so
    ``https://x.supabase.co/`` becomes ``https://x.supabase.co//storage/v1``.
    Existing deployments may depend on that exact path.
    """
    return f"{api_url}/storage/v1"


def object_key(file_hash: str, file_ext: str, directory: str = "") -> str:
    """
    Derive the object key for a file: ``{directory}/{hash}{ext}``.

    Empty directory segments are dropped before joining, so ``"/uploads/"``
    and ``"uploads"`` give the same key. Separators are always forward
    slashes, whatever the host platform.
    """
    leaf = f"{file_hash}{file_ext}"
    segments = [s for s in (directory or "").replace("\\", "/").split("/") if s]
    if not segments:
        return leaf
    return "/".join([*segments, leaf])


def kilobytes_to_bytes(size_kb: float) -> float:
    """Convert kilobytes to bytes (decimal, 1 KB = 1000 bytes)."""
    return size_kb * BYTES_PER_KILOBYTE


def human_readable_bytes(size_bytes: float) -> str:
    """
    Format a byte count with the largest fitting decimal unit.

    >>> human_readable_bytes(0)
    '0 Bytes'
    >>> human_readable_bytes(1500)
    '1.50 KB'
    """
    if size_bytes == 0:
        return "0 Bytes"

    # Repeated division instead of floor(log(n, 1000)): the log form
    # misplaces exact powers like 1_000_000 due to float rounding.
    index = 0
    scaled = float(size_bytes)
    while scaled >= BYTES_PER_KILOBYTE and index < len(SIZE_UNITS) - 1:
        scaled /= BYTES_PER_KILOBYTE
        index += 1

    return f"{scaled:.2f} {SIZE_UNITS[index]}"
