"""Storage of files attached to submissions."""

import logging
import os
import secrets
import time
from pathlib import Path
from typing import Dict, Any

import aiofiles

logger = logging.getLogger(__name__)

# Public URL prefix the uploads directory is served under
UPLOADS_URL_PREFIX = '/uploads'

def unique_filename(original_name: str) -> str:
    """Build a collision-free filename that keeps the original name readable."""
    base = os.path.basename(original_name or '').strip() or 'file'
    base = base.replace(' ', '_')
    timestamp = int(time.time() * 1000)
    return f"{timestamp}-{secrets.token_hex(6)}-{base}"

async def store_file(uploads_dir: str, original_name: str, content: bytes, content_type: str = '') -> Dict[str, Any]:
    """Write an uploaded file to the uploads directory.

    Args:
        uploads_dir: Directory to write into, created when missing
        original_name: Client supplied filename
        content: File bytes
        content_type: Client supplied MIME type

    Returns:
        Dict with name, size (bytes, as text), type, url and path
    """
    directory = Path(uploads_dir)
    directory.mkdir(parents=True, exist_ok=True)

    filename = unique_filename(original_name)
    path = directory / filename

    async with aiofiles.open(path, 'wb') as f:
        await f.write(content)

    logger.debug(f"Stored upload {original_name} as {path}")

    return {
        'name': original_name,
        'size': str(len(content)),
        'type': content_type or '',
        'url': f"{UPLOADS_URL_PREFIX}/{filename}",
        'path': str(path)
    }

def remove_file(path: str) -> None:
    """Remove a stored upload, ignoring files that are already gone."""
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
