# datavista_app/services/export.py
from __future__ import annotations

import math
from datetime import datetime
from io import BytesIO

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

from reportlab.lib import colors  # noqa: E402
from reportlab.lib.pagesizes import A4  # noqa: E402
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle  # noqa: E402
from reportlab.lib.units import mm  # noqa: E402
from reportlab.platypus import (  # noqa: E402
    SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, Image, KeepTogether
)
from reportlab.pdfgen.canvas import Canvas  # noqa: E402
from markupsafe import escape  # noqa: E402

from .charts import render_dashboard  # noqa: E402


def _draw_chart(ax, chart: dict) -> None:
    ax.set_title(chart.get("title") or "", fontsize=10)
    kind = chart["kind"]
    if kind == "unsupported":
        ax.axis("off")
        ax.text(0.5, 0.5, chart["message"], ha="center", va="center", color="grey")
        return
    labels, values, palette = chart["labels"], chart["values"], chart["colors"]
    if not values:
        ax.axis("off")
        ax.text(0.5, 0.5, "No data", ha="center", va="center", color="grey")
        return
    if kind == "bar":
        ax.bar(labels, values, color="#3B82F6")
    elif kind == "line":
        ax.plot(labels, values, color="#3B82F6", linewidth=2, marker="o")
    elif kind == "area":
        xs = range(len(values))
        ax.fill_between(xs, values, color="#3B82F6", alpha=0.35)
        ax.plot(xs, values, color="#3B82F6")
        ax.set_xticks(list(xs))
        ax.set_xticklabels(labels)
    elif kind == "pie":
        ax.pie([max(v, 0) for v in values], labels=labels, colors=palette, autopct="%1.0f%%")
        ax.axis("equal")
    if kind != "pie":
        ax.grid(True, linestyle="--", alpha=0.4)
        ax.tick_params(axis="x", labelrotation=30, labelsize=8)


def chart_png(chart: dict, dpi: int = 150) -> bytes:
    fig, ax = plt.subplots(figsize=(6, 3.5))
    try:
        _draw_chart(ax, chart)
        fig.tight_layout()
        buff = BytesIO()
        fig.savefig(buff, format="png", dpi=dpi, facecolor="white")
        return buff.getvalue()
    finally:
        plt.close(fig)


def export_png(dashboard, dpi: int = 150) -> bytes:
    """Rasterizes the current rendering: title, metrics line, charts grid."""
    view = render_dashboard(dashboard)
    charts = view["charts"]
    cols = 2 if len(charts) > 1 else 1
    rows = max(1, math.ceil(len(charts) / cols))

    fig = plt.figure(figsize=(6 * cols, 1.5 + 3.5 * rows))
    try:
        fig.suptitle(view["title"], fontsize=14, fontweight="bold")
        metrics_line = "   |   ".join(
            f"{m['name']}: {m['value']}" + (f" ({m['change']})" if m.get("change") else "")
            for m in view["metrics"]
        )
        if metrics_line:
            fig.text(0.5, 1 - 0.9 / (1.5 + 3.5 * rows), metrics_line, ha="center", fontsize=9)

        if charts:
            grid = fig.add_gridspec(rows, cols, top=1 - 1.5 / (1.5 + 3.5 * rows))
            for i, chart in enumerate(charts):
                _draw_chart(fig.add_subplot(grid[i // cols, i % cols]), chart)
        else:
            fig.text(0.5, 0.4, "No charts were generated for this file.", ha="center", color="grey")

        buff = BytesIO()
        fig.savefig(buff, format="png", dpi=dpi, facecolor="white")
        return buff.getvalue()
    finally:
        plt.close(fig)


def _styles():
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle("title", parent=base["Heading1"], fontSize=16, leading=20, spaceAfter=8),
        "h2": ParagraphStyle("h2", parent=base["Heading3"], fontSize=12, leading=14, spaceBefore=6),
        "body": ParagraphStyle("body", parent=base["Normal"], fontSize=10, leading=13),
        "label": ParagraphStyle("label", parent=base["Normal"], fontSize=9, leading=12, textColor=colors.grey),
    }


def _footer(canvas: Canvas, doc):
    w, h = A4
    y = 12 * mm
    canvas.setStrokeColor(colors.lightgrey)
    canvas.setLineWidth(0.5)
    canvas.line(15 * mm, y + 6 * mm, w - 15 * mm, y + 6 * mm)
    canvas.setFont("Helvetica", 8)
    ts = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    canvas.drawRightString(w - 15 * mm, y + 2 * mm, f"Generated {ts}  •  Page {doc.page}")


def _metrics_table(metrics) -> Table:
    rows = [["Metric", "Value", "Change"]]
    for m in metrics:
        rows.append([m["name"], m["value"], m.get("change") or "-"])
    table = Table(rows, colWidths=[80 * mm, 50 * mm, 30 * mm])
    table.setStyle(TableStyle([
        ("FONT", (0, 0), (-1, -1), "Helvetica", 9),
        ("FONT", (0, 0), (-1, 0), "Helvetica-Bold", 9),
        ("BACKGROUND", (0, 0), (-1, 0), colors.whitesmoke),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ("LEFTPADDING", (0, 0), (-1, -1), 4),
        ("RIGHTPADDING", (0, 0), (-1, -1), 4),
    ]))
    return table


def export_pdf(dashboard) -> bytes:
    view = render_dashboard(dashboard)
    st = _styles()
    buff = BytesIO()
    doc = SimpleDocTemplate(
        buff,
        pagesize=A4,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=18 * mm,
        bottomMargin=18 * mm,
        title=f"{view['title']} dashboard",
    )

    story = [Paragraph(str(escape(view["title"])), st["title"]),
             Paragraph(f"{escape(dashboard.file_name)} ({escape(dashboard.file_type)})", st["label"]),
             Spacer(1, 4 * mm),
             Paragraph("Summary", st["h2"])]
    for para in (view["summary"] or "").split("\n\n"):
        if para.strip():
            story.append(Paragraph(str(escape(para.strip())).replace("\n", "<br/>"), st["body"]))

    if view["insights"]:
        story.append(Paragraph("Insights", st["h2"]))
        for item in view["insights"]:
            story.append(Paragraph(f"• {escape(item)}", st["body"]))

    if view["metrics"]:
        story.append(Paragraph("Metrics", st["h2"]))
        story.append(_metrics_table(view["metrics"]))

    for chart in view["charts"]:
        img = Image(BytesIO(chart_png(chart)), width=170 * mm, height=170 * mm * 3.5 / 6)
        story.append(KeepTogether([Spacer(1, 5 * mm), img]))

    doc.build(story, onFirstPage=_footer, onLaterPages=_footer)
    pdf = buff.getvalue()
    buff.close()
    return pdf
