"""
Mermaid diagram rendering through the mermaid-cli (``mmdc``) executable.
"""

import logging
import re
import subprocess
import tempfile
from pathlib import Path

from .files import PathLike

logger = logging.getLogger(__name__)

UNIQUE_PREFIX = 'mmd_'
IMAGE_EXTENSION = '.svg'
GENERATED_NAME = re.compile(r'mmd_\d+\.svg')


class DiagramRenderer:
    """Turns Mermaid text into an image file. Never raises."""

    def __init__(self, executable: str = 'mmdc'):
        self.executable = executable

    def generate_unique_filename(self, directory: PathLike) -> str:
        """First mmd_<n>.svg name not yet taken in ``directory``."""
        index = 1
        while (Path(directory) / f"{UNIQUE_PREFIX}{index}{IMAGE_EXTENSION}").exists():
            index += 1
        return f"{UNIQUE_PREFIX}{index}{IMAGE_EXTENSION}"

    def render(self, diagram_text: str, output_path: PathLike) -> bool:
        """Render ``diagram_text`` to ``output_path``.

        The renderer can exit cleanly without writing anything, so success is
        decided by the output file existing afterwards.
        """
        output = Path(output_path)
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile('w', encoding='utf-8', suffix='.mmd', prefix='temp_',
                                             dir=output.parent, delete=False) as f:
                f.write(diagram_text)
                temp_file = Path(f.name)
        except OSError as error:
            logger.error(f"Error preparing Mermaid diagram {output}: {error}")
            return False

        logger.info(f"Generating Mermaid diagram: {output}")
        try:
            result = subprocess.run(
                [self.executable, '-i', str(temp_file), '-o', str(output)],
                capture_output=True,
                text=True,
            )
            if result.returncode != 0:
                logger.error(f"Mermaid renderer exited with {result.returncode}: {result.stderr.strip()}")
        except Exception as error:
            logger.error(f"Error generating Mermaid diagram {output}: {error}")
        finally:
            try:
                temp_file.unlink()
            except OSError as error:
                logger.error(f"Failed to delete temporary file {temp_file}: {error}")

        if not output.is_file():
            logger.error(f"Failed to generate diagram: {output}")
            return False
        logger.info(f"Successfully generated diagram: {output}")
        return True


def clear_generated_diagrams(directory: PathLike) -> int:
    """Delete the numbered mmd_<n>.svg images in ``directory``.

    Linked diagrams keep their source names and are not touched.
    """
    removed = 0
    directory = Path(directory)
    if not directory.is_dir():
        return removed
    for path in directory.glob(f"{UNIQUE_PREFIX}*{IMAGE_EXTENSION}"):
        if not GENERATED_NAME.fullmatch(path.name):
            continue
        try:
            path.unlink()
            removed += 1
        except OSError as error:
            logger.error(f"Failed to delete old diagram {path}: {error}")
    if removed:
        logger.info(f"Removed {removed} previously generated diagrams from {directory}")
    return removed
