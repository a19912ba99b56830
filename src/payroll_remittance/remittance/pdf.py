"""PDF rendering of the payment manifest."""

from __future__ import annotations

import io
from typing import Protocol

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from payroll_remittance.remittance.manifest import BorderManifest


class ManifestRenderer(Protocol):
    """Turns a BorderManifest into document bytes."""

    media_type: str
    file_extension: str

    def render(self, manifest: BorderManifest) -> bytes:
        ...


# (title, x offset in mm, width in characters)
_COLUMNS = (
    ("Nome", 15, 34),
    ("CPF", 82, 14),
    ("Banco", 110, 12),
    ("Agência", 134, 8),
    ("Conta", 152, 14),
)
_AMOUNT_RIGHT = 195 * mm
_ROW_HEIGHT = 6 * mm
_BOTTOM_MARGIN = 20 * mm


class ReportLabManifestRenderer:
    """A4 manifest: header block, one row per payment, total line."""

    media_type = "application/pdf"
    file_extension = "pdf"

    def __init__(self, company_name: str | None = None):
        self.company_name = company_name

    def render(self, manifest: BorderManifest) -> bytes:
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4)
        pdf.setTitle(f"Borderô de pagamento {manifest.period_label}")
        _, height = A4

        y = self._draw_page_header(pdf, manifest, height)
        for entry in manifest.entries:
            if y < _BOTTOM_MARGIN:
                pdf.showPage()
                y = self._draw_table_header(pdf, height - 20 * mm)
            pdf.setFont("Helvetica", 8)
            cells = (entry.name, entry.document, entry.bank, entry.agency, entry.account)
            for (_, x, chars), value in zip(_COLUMNS, cells):
                pdf.drawString(x * mm, y, value[:chars])
            pdf.drawRightString(_AMOUNT_RIGHT, y, entry.amount_display)
            y -= _ROW_HEIGHT

        y -= 2 * mm
        pdf.line(15 * mm, y + 4 * mm, _AMOUNT_RIGHT, y + 4 * mm)
        pdf.setFont("Helvetica-Bold", 10)
        pdf.drawRightString(
            _AMOUNT_RIGHT,
            y - 2 * mm,
            f"TOTAL ({manifest.record_count} pagamentos): {manifest.total_display}",
        )

        pdf.showPage()
        pdf.save()
        return buffer.getvalue()

    def _draw_page_header(self, pdf: canvas.Canvas, manifest: BorderManifest, height: float) -> float:
        y = height - 20 * mm
        pdf.setFont("Helvetica-Bold", 16)
        pdf.drawCentredString(105 * mm, y, "BORDERÔ DE PAGAMENTO")
        y -= 8 * mm

        pdf.setFont("Helvetica", 11)
        pdf.drawCentredString(105 * mm, y, f"Período: {manifest.period_label}")
        for label, value in (
            ("Empresa", manifest.company or self.company_name),
            ("Centro de Custo", manifest.cost_center),
        ):
            if value:
                y -= 6 * mm
                pdf.drawCentredString(105 * mm, y, f"{label}: {value}")

        if manifest.issued_at is not None:
            y -= 6 * mm
            pdf.setFont("Helvetica", 9)
            pdf.drawRightString(
                _AMOUNT_RIGHT,
                y,
                f"Data de emissão: {manifest.issued_at.strftime('%d/%m/%Y %H:%M')}",
            )

        return self._draw_table_header(pdf, y - 10 * mm)

    def _draw_table_header(self, pdf: canvas.Canvas, y: float) -> float:
        pdf.setFont("Helvetica-Bold", 9)
        for title, x, _ in _COLUMNS:
            pdf.drawString(x * mm, y, title)
        pdf.drawRightString(_AMOUNT_RIGHT, y, "Valor (R$)")
        pdf.line(15 * mm, y - 2 * mm, _AMOUNT_RIGHT, y - 2 * mm)
        return y - _ROW_HEIGHT
