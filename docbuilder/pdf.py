"""
Markdown to PDF conversion: Python-Markdown renders HTML, WeasyPrint lays it out.
"""

import logging
from pathlib import Path
from typing import List, Sequence

import markdown

from .files import PathLike

logger = logging.getLogger(__name__)

DEFAULT_CSS = """
@page { size: A4; margin: 20mm 18mm; }
body { font-family: "Helvetica Neue", Arial, sans-serif; font-size: 10.5pt; line-height: 1.5; color: #222; }
h1 { page-break-before: always; border-bottom: 1px solid #ccc; padding-bottom: 4px; }
h1:first-of-type { page-break-before: avoid; }
code, pre { font-family: "SFMono-Regular", Consolas, monospace; font-size: 9pt; }
pre { background: #f6f8fa; padding: 8px; border-radius: 4px; white-space: pre-wrap; }
img { max-width: 100%; }
table { border-collapse: collapse; }
th, td { border: 1px solid #ddd; padding: 4px 8px; }
"""


class PdfConverter:
    """Converts one Markdown file into a PDF."""

    def __init__(self):
        self.md = markdown.Markdown(extensions=[
            'extra',  # tables, fenced code blocks, etc.
            'codehilite',
            'toc',
            'sane_lists',
        ])

    def _stylesheets(self, stylesheets: Sequence[PathLike]) -> List:
        from weasyprint import CSS

        sheets = []
        for sheet in stylesheets:
            if not sheet or not str(sheet).strip():
                continue
            path = Path(sheet)
            if path.is_file():
                sheets.append(CSS(filename=str(path)))
            else:
                logger.warning(f"PDF stylesheet not found: {path}")
        if not sheets:
            sheets.append(CSS(string=DEFAULT_CSS))
        return sheets

    def to_html(self, markdown_text: str, title: str) -> str:
        self.md.reset()
        body = self.md.convert(markdown_text)
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{title}</title>
</head>
<body>
{body}
</body>
</html>"""

    def convert(self, source: PathLike, destination: PathLike, stylesheets: Sequence[PathLike] = ()):
        """Write ``destination`` from the Markdown in ``source``.

        Relative image paths resolve against the source file's folder.
        Errors from reading, rendering or writing propagate to the caller.
        """
        # WeasyPrint loads its native libraries on import
        from weasyprint import HTML

        source = Path(source)
        destination = Path(destination)
        html = self.to_html(source.read_text(encoding='utf-8'), destination.stem)
        destination.parent.mkdir(parents=True, exist_ok=True)
        HTML(string=html, base_url=str(source.parent.resolve())).write_pdf(
            str(destination), stylesheets=self._stylesheets(stylesheets))
        logger.info(f"Wrote PDF to {destination}")
