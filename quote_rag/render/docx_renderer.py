"""Fill the commercial offer DOCX template with the quote table.

The template carries {placeholders}: {document_title}, {order_id},
{total_price} are replaced in place; the paragraph holding
{components_table} is replaced by the priced items table.
"""

import io
import logging
import random
import time
from pathlib import Path
from typing import Iterable, Protocol

from docx import Document
from docx.enum.table import WD_ALIGN_VERTICAL
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml.shared import OxmlElement, qn

from .. import config
from ..errors import RenderError
from ..llm.schemas import LineItem

logger = logging.getLogger(__name__)

TABLE_PLACEHOLDER = "{components_table}"
TABLE_HEADERS = ["Наименование", "Кол-во", "Цена за шт.", "Сумма"]


class Renderer(Protocol):
    """Turns priced items into a document."""

    def render(self, items: list[LineItem], total_cost: int) -> bytes: ...


def _iter_paragraphs(doc) -> Iterable:
    """Body, table cell, header and footer paragraphs."""
    yield from doc.paragraphs
    for table in doc.tables:
        for row in table.rows:
            for cell in row.cells:
                yield from cell.paragraphs
    for section in doc.sections:
        for part in (section.header, section.footer):
            # Linked parts have no definition of their own; reading them would add one
            if not part.is_linked_to_previous:
                yield from part.paragraphs


def _replace_text(doc, old: str, new: str) -> None:
    """Replace text run by run, so formatting of each run is kept."""
    for paragraph in _iter_paragraphs(doc):
        for run in paragraph.runs:
            if old in run.text:
                run.text = run.text.replace(old, new)


def _set_table_borders(table) -> None:
    tbl_pr = table._tbl.tblPr
    borders = OxmlElement("w:tblBorders")
    for edge in ("top", "left", "bottom", "right", "insideH", "insideV"):
        element = OxmlElement(f"w:{edge}")
        element.set(qn("w:val"), "single")
        element.set(qn("w:sz"), "4")
        element.set(qn("w:space"), "0")
        element.set(qn("w:color"), "auto")
        borders.append(element)
    # tblBorders must follow tblW in the tblPr sequence
    width = tbl_pr.find(qn("w:tblW"))
    if width is not None:
        width.addnext(borders)
    else:
        tbl_pr.append(borders)


def _set_full_width(table) -> None:
    tbl_pr = table._tbl.tblPr
    width = tbl_pr.find(qn("w:tblW"))
    if width is None:
        width = OxmlElement("w:tblW")
        tbl_pr.append(width)
    # pct is in fiftieths of a percent
    width.set(qn("w:type"), "pct")
    width.set(qn("w:w"), "5000")


class DocxRenderer:
    """Renders a quote into the DOCX template."""

    def __init__(
        self,
        template_path: Path | None = None,
        title: str = "Технико-коммерческое предложение",
        currency: str = "руб.",
    ):
        self.template_path = template_path or config.TEMPLATE_PATH
        self.title = title
        self.currency = currency

    def _money(self, amount: int) -> str:
        return f"{amount} {self.currency}"

    def render(self, items: list[LineItem], total_cost: int) -> bytes:
        """Fill the template and return the DOCX bytes.

        Raises:
            RenderError: Template missing or without the table placeholder
        """
        if not self.template_path.exists():
            raise RenderError(f"Template not found: {self.template_path}")

        doc = Document(str(self.template_path))
        order_id = f"{int(time.time())}-{random.randint(0, 999)}"

        _replace_text(doc, "{document_title}", self.title)
        _replace_text(doc, "{order_id}", order_id)
        _replace_text(doc, "{total_price}", self._money(total_cost))

        anchor = next((p for p in doc.paragraphs if TABLE_PLACEHOLDER in p.text), None)
        if anchor is None:
            raise RenderError(f"Placeholder {TABLE_PLACEHOLDER} not found in {self.template_path}")

        table = self._build_table(doc, items, total_cost)
        # add_table appends at the end of the body; move it under the anchor
        anchor._p.addnext(table._tbl)
        anchor._p.getparent().remove(anchor._p)

        buffer = io.BytesIO()
        doc.save(buffer)
        logger.info(f"Rendered DOCX with {len(items)} items, order {order_id}")
        return buffer.getvalue()

    def _build_table(self, doc, items: list[LineItem], total_cost: int):
        table = doc.add_table(rows=1, cols=len(TABLE_HEADERS))
        _set_full_width(table)
        _set_table_borders(table)

        for cell, header in zip(table.rows[0].cells, TABLE_HEADERS):
            cell.vertical_alignment = WD_ALIGN_VERTICAL.CENTER
            paragraph = cell.paragraphs[0]
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
            paragraph.add_run(header).bold = True

        for item in items:
            cells = table.add_row().cells
            cells[0].text = item.name
            cells[1].text = str(item.quantity)
            cells[2].text = self._money(item.unit_price)
            cells[3].text = self._money(item.subtotal)

        total_cells = table.add_row().cells
        label = total_cells[0].merge(total_cells[2])
        label_paragraph = label.paragraphs[0]
        label_paragraph.alignment = WD_ALIGN_PARAGRAPH.RIGHT
        label_paragraph.add_run("Итого:").bold = True
        total_cells[3].paragraphs[0].add_run(self._money(total_cost)).bold = True

        return table
