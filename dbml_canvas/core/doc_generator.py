"""
Doc Generator Module - Generates schema documentation (data dictionary)
in HTML or Word format from a ParsedSchema.
"""
import html
import re
from datetime import datetime
from typing import List, Tuple

from docx import Document
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt, Cm

from .schema_model import ParsedSchema, Table

HEADERS = ["Column", "Type", "Length", "Nullable", "Primary key", "Note"]


def _extract_type_and_length(data_type_full: str) -> Tuple[str, str]:
    """
    Split a type into name and length
    e.g. varchar(50) -> ('VARCHAR', '50')
         integer -> ('INTEGER', '-')
    """
    if not data_type_full:
        return 'UNKNOWN', '-'

    match = re.match(r'^(\w+)(?:\(([^)]+)\))?', data_type_full.upper())
    if match:
        return match.group(1), match.group(2) or '-'
    return data_type_full.upper(), '-'


def _foreign_key_notes(schema: ParsedSchema, table: Table) -> List[str]:
    notes = []
    for rel in schema.relationships:
        if rel.from_table == table.name:
            notes.append(f"{rel.from_column} → {rel.to_table}.{rel.to_column}")
    return notes


def _table_rows(table: Table) -> List[List[str]]:
    rows = []
    for col in table.columns:
        data_type, length = _extract_type_and_length(col.type)
        rows.append([
            col.name,
            data_type,
            length,
            'No' if col.is_not_null or col.is_primary_key else 'Yes',
            'Yes' if col.is_primary_key else 'No',
            col.note or '-',
        ])
    return rows


def _set_border(cell, edge: str, size: str):
    tc_pr = cell._tc.get_or_add_tcPr()
    tc_borders = tc_pr.find(qn('w:tcBorders'))
    if tc_borders is None:
        tc_borders = OxmlElement('w:tcBorders')
        tc_pr.append(tc_borders)
    border = OxmlElement(f'w:{edge}')
    border.set(qn('w:val'), 'single')
    border.set(qn('w:sz'), size)
    border.set(qn('w:space'), '0')
    border.set(qn('w:color'), '000000')
    tc_borders.append(border)


def _set_triple_line_style(table):
    """
    Three-line table: thick top rule, thin rule under the header row,
    thick bottom rule and nothing else.
    """
    tbl_pr = table._tbl.tblPr
    if tbl_pr is None:
        tbl_pr = OxmlElement('w:tblPr')
        table._tbl.insert(0, tbl_pr)

    old_borders = tbl_pr.find(qn('w:tblBorders'))
    if old_borders is not None:
        tbl_pr.remove(old_borders)

    tbl_borders = OxmlElement('w:tblBorders')
    for border_name in ['top', 'left', 'bottom', 'right', 'insideH', 'insideV']:
        border = OxmlElement(f'w:{border_name}')
        border.set(qn('w:val'), 'nil')
        tbl_borders.append(border)
    tbl_pr.append(tbl_borders)

    for cell in table.rows[0].cells:
        _set_border(cell, 'top', '12')     # 1.5pt
        _set_border(cell, 'bottom', '6')   # 0.75pt
    for cell in table.rows[-1].cells:
        _set_border(cell, 'bottom', '12')


def generate_html(schema: ParsedSchema) -> str:
    """
    Generate an HTML data dictionary with three-line tables
    """
    css = """
    <style>
        body { font-family: 'Arial', sans-serif; color: #333; background: #f5f7fa; padding: 2rem; }
        .document-container { max-width: 95%; margin: 0 auto; background: white; padding: 2rem; border-radius: 8px; }
        .document-header { text-align: center; border-bottom: 3px solid #3498db; margin-bottom: 2rem; }
        .table-title { text-align: center; font-size: 12pt; }
        .three-line-table { width: 100%; border-collapse: collapse; border-top: 2px solid #000; border-bottom: 2px solid #000; }
        .three-line-table thead th { border-bottom: 1px solid #000; padding: 8px; }
        .three-line-table td { padding: 6px 8px; text-align: center; }
        .three-line-table td:first-child, .three-line-table td:last-child { text-align: left; }
        .pk-yes { color: #e74c3c; font-weight: bold; }
        .note { font-size: 9pt; color: #666; margin: 0.5rem 0 2rem 1cm; font-style: italic; }
    </style>
    """

    total_columns = sum(len(t.columns) for t in schema.tables)
    parts = [f"""<!DOCTYPE html>
<html>
<head>
    <title>Database Schema</title>
    <meta charset="UTF-8">
    {css}
</head>
<body>
    <div class="document-container">
        <div class="document-header">
            <h1>Database Schema</h1>
            <p>Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}<br>
            Tables: {len(schema.tables)} · Columns: {total_columns}</p>
        </div>
"""]

    for idx, table in enumerate(schema.tables):
        head = "".join(f"<th>{h}</th>" for h in HEADERS)
        parts.append(f'        <h2 class="table-title">Table {idx + 1}: {html.escape(table.name)}</h2>\n')
        parts.append(f'        <table class="three-line-table">\n            <thead><tr>{head}</tr></thead>\n            <tbody>\n')
        for row in _table_rows(table):
            cells = [f"<td>{html.escape(value)}</td>" for value in row]
            if row[4] == 'Yes':
                cells[4] = '<td class="pk-yes">Yes</td>'
            parts.append(f"                <tr>{''.join(cells)}</tr>\n")
        parts.append("            </tbody>\n        </table>\n")

        fk_notes = _foreign_key_notes(schema, table)
        if fk_notes:
            parts.append(f'        <div class="note">Foreign keys: {html.escape("; ".join(fk_notes))}</div>\n')

    parts.append("    </div>\n</body>\n</html>\n")
    return "".join(parts)


def generate_docx(schema: ParsedSchema, filename: str):
    """
    Write a .docx data dictionary with one three-line table per schema table
    """
    doc = Document()

    title = doc.add_heading('Database Schema', level=0)
    title.alignment = 1

    info_para = doc.add_paragraph()
    info_para.alignment = 1
    info_para.add_run(f'Generated: {datetime.now().strftime("%Y-%m-%d %H:%M:%S")}\n').font.size = Pt(10)
    info_para.add_run(f'Tables: {len(schema.tables)}\n').font.size = Pt(10)
    info_para.add_run(f'Columns: {sum(len(t.columns) for t in schema.tables)}').font.size = Pt(10)

    style = doc.styles['Normal']
    style.font.name = 'Arial'
    style.font.size = Pt(10.5)

    widths = [Cm(3.5), Cm(2.5), Cm(1.5), Cm(1.8), Cm(2.0), Cm(5.5)]

    for idx, table in enumerate(schema.tables):
        heading = doc.add_paragraph(f"Table {idx + 1}: {table.name}")
        heading.alignment = 1
        heading.runs[0].font.bold = True
        heading.runs[0].font.size = Pt(12)

        tbl = doc.add_table(rows=1, cols=len(HEADERS))
        hdr_cells = tbl.rows[0].cells
        for i, header_text in enumerate(HEADERS):
            hdr_cells[i].text = header_text
            for paragraph in hdr_cells[i].paragraphs:
                paragraph.alignment = 1
                for run in paragraph.runs:
                    run.font.bold = True

        for row in _table_rows(table):
            row_cells = tbl.add_row().cells
            for i, value in enumerate(row):
                row_cells[i].text = value
                for paragraph in row_cells[i].paragraphs:
                    # name and note left aligned, the rest centred
                    paragraph.alignment = 0 if i in (0, 5) else 1
                    for run in paragraph.runs:
                        run.font.size = Pt(10)

        _set_triple_line_style(tbl)

        tbl.autofit = False
        for i, width in enumerate(widths):
            for row in tbl.rows:
                row.cells[i].width = width

        fk_notes = _foreign_key_notes(schema, table)
        if fk_notes:
            note_para = doc.add_paragraph("Foreign keys: " + "; ".join(fk_notes))
            note_para.paragraph_format.left_indent = Cm(0.5)
            note_para.runs[0].font.size = Pt(9)
            note_para.runs[0].font.italic = True

        doc.add_paragraph()

        # page break after every third table
        if (idx + 1) % 3 == 0 and idx + 1 < len(schema.tables):
            doc.add_page_break()

    doc.save(filename)
    return filename
