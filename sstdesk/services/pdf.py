"""
PDF-звіти по документації заявки.

Один запис документа або зведений звіт по всіх записах одного типу.
Зміст запису довільний JSON: скаляри йдуть таблицею "поле / значення",
списки і вкладені об'єкти окремими розділами.
"""
from __future__ import annotations

import logging
from datetime import datetime
from io import BytesIO
from typing import Any, Iterable, List, Optional, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from sstdesk.db.models import DocumentTemplate, Service, ServiceDocument
from sstdesk.services.notifications import service_type_name

logger = logging.getLogger("sstdesk.pdf")

DOCUMENT_TITLES = {
    "CHARLA_SEGURIDAD": "CHARLA DE SEGURIDAD",
    "ATS": "ANÁLISIS DE TRABAJO SEGURO (ATS)",
    "PERMISO_ALTURAS": "PERMISO DE TRABAJO EN ALTURAS",
    "PERMISO_ESPACIOS_CONFINADOS": "PERMISO DE ESPACIOS CONFINADOS",
    "PERMISO_TRABAJO": "PERMISO DE TRABAJO",
}

PRIMARY = HexColor("#2196F3")
MUTED = HexColor("#646464")


def document_title(document_type: str, label: Optional[str] = None) -> str:
    return DOCUMENT_TITLES.get(document_type) or label or "DOCUMENTO SST"


def _styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(
        name="DocTitle",
        parent=styles["Title"],
        fontSize=16,
        textColor=PRIMARY,
        alignment=TA_CENTER,
        fontName="Helvetica-Bold",
    ))
    styles.add(ParagraphStyle(
        name="Section",
        parent=styles["Heading2"],
        fontSize=12,
        textColor=PRIMARY,
        spaceBefore=8,
        spaceAfter=4,
    ))
    styles.add(ParagraphStyle(name="Meta", parent=styles["Normal"], fontSize=9, textColor=MUTED))
    return styles


class _NumberedCanvas(canvas.Canvas):
    """Футер "Página i de n": загальну кількість знаємо лише після build."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._pages: List[dict] = []

    def showPage(self):
        self._pages.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._pages)
        for state in self._pages:
            self.__dict__.update(state)
            self.setFont("Helvetica", 8)
            self.setFillColor(colors.grey)
            self.drawCentredString(A4[0] / 2, 10 * mm, f"Página {self._pageNumber} de {total}")
            super().showPage()
        super().save()


def _label(key: str) -> str:
    return str(key).replace("_", " ").capitalize()


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "Sí" if value else "No"
    if isinstance(value, dict):
        return "; ".join(f"{_label(k)}: {_text(v)}" for k, v in value.items())
    if isinstance(value, (list, tuple)):
        return ", ".join(_text(v) for v in value)
    return "" if value is None else str(value)


def _p(text: str, style) -> Paragraph:
    return Paragraph(escape(text), style)


def _rows_table(rows: Sequence[tuple], styles) -> Table:
    body = styles["BodyText"]
    table = Table(
        [[_p(k, body), _p(v, body)] for k, v in rows],
        colWidths=[55 * mm, 115 * mm],
    )
    table.setStyle(TableStyle([
        ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ("BACKGROUND", (0, 0), (0, -1), HexColor("#F2F7FD")),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))
    return table


def content_flowables(content: Optional[dict], styles) -> list:
    if not content:
        return [_p("Sin contenido registrado", styles["Meta"])]
    story: list = []
    scalars = [(_label(k), _text(v)) for k, v in content.items() if not isinstance(v, (list, tuple, dict))]
    if scalars:
        story += [_p("INFORMACIÓN GENERAL", styles["Section"]), _rows_table(scalars, styles)]
    for key, value in content.items():
        if isinstance(value, dict):
            story.append(_p(_label(key).upper(), styles["Section"]))
            story.append(_rows_table([(_label(k), _text(v)) for k, v in value.items()], styles))
        elif isinstance(value, (list, tuple)):
            story.append(_p(_label(key).upper(), styles["Section"]))
            if not value:
                story.append(_p("-", styles["BodyText"]))
            for item in value:
                story.append(_p(f"• {_text(item)}", styles["BodyText"]))
    return story


def _header(title: str, service: Service, styles, issued: Optional[datetime]) -> list:
    story = [_p(title, styles["DocTitle"]), Spacer(1, 4 * mm)]
    meta = [
        f"Servicio: {service_type_name(service.service_type)}",
        f"Dirección: {service.address}",
    ]
    if issued is not None:
        meta.append(f"Fecha de Emisión: {issued.strftime('%d/%m/%Y %H:%M')}")
    story += [_p(line, styles["Meta"]) for line in meta]
    story.append(Spacer(1, 6 * mm))
    return story


def _build(story: list, title: str) -> bytes:
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        title=title,
        leftMargin=20 * mm,
        rightMargin=20 * mm,
        topMargin=20 * mm,
        bottomMargin=20 * mm,
    )
    doc.build(story, canvasmaker=_NumberedCanvas)
    return buf.getvalue()


def render_document(doc: ServiceDocument, service: Service, label: Optional[str] = None) -> bytes:
    styles = _styles()
    title = document_title(doc.document_type, label)
    story = _header(f"{title} #{doc.instance_number}", service, styles, doc.completed_at or doc.created_at)
    story += content_flowables(doc.content, styles)
    pdf = _build(story, title)
    logger.info("pdf_rendered document=%s bytes=%d", doc.id, len(pdf))
    return pdf


def render_consolidated(
    document_type: str,
    instances: Iterable[ServiceDocument],
    service: Service,
    *,
    label: Optional[str] = None,
    template: Optional[DocumentTemplate] = None,
    now: Optional[datetime] = None,
) -> bytes:
    """Усі записи одного типу за номером, кожен з нової сторінки."""
    styles = _styles()
    title = document_title(document_type, label)
    instances = sorted(instances, key=lambda d: d.instance_number)
    story = _header(f"{title} - CONSOLIDADO", service, styles, now)
    if template is not None:
        story.append(_p(f"Formato: {template.name}", styles["Meta"]))
    story.append(_p(f"Total de registros: {len(instances)}", styles["Meta"]))
    for i, doc in enumerate(instances):
        if i:
            story.append(PageBreak())
        story.append(_p(f"REGISTRO #{doc.instance_number}", styles["Heading1"]))
        when = doc.completed_at or doc.created_at
        if when is not None:
            story.append(_p(f"Completado: {when.strftime('%d/%m/%Y %H:%M')}", styles["Meta"]))
        story += content_flowables(doc.content, styles)
    return _build(story, title)


def pdf_filename(label: str, day: datetime, *, consolidated: bool = False) -> str:
    safe = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in label) or "DOCUMENTO"
    suffix = "_CONSOLIDADO" if consolidated else ""
    return f"{safe}{suffix}_{day.date().isoformat()}.pdf"
