"""
Text output sink

Writes job artifacts such as the compiled reports or the shop sheet into a
local directory.
"""

from pathlib import Path
from typing import Dict

import aiofiles

from fishtales.core.logging import get_logger


class TextFileSink:
    """
    Writes named text files under one directory

    Every write also keeps the encoded bytes in `files`, so callers can hand
    the artifacts on without reading them back.
    """

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.files: Dict[str, bytes] = {}
        self.logger = get_logger('text_output')

    async def write(self, name: str, text: str) -> bytes:
        data = text.encode('utf-8')
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / name

        async with aiofiles.open(path, 'wb') as f:
            await f.write(data)

        self.files[name] = data
        self.logger.info(f"Saved {name} ({len(data)} bytes) to {path}")
        return data
