import os
import io
import re
import logging
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, Image

from config import REPORTS_FOLDER, COLLEGE_NAME
from portal.services.ratings import format_rating

logger = logging.getLogger(__name__)

BAND_COLOURS = {
    'good': '#16a34a',
    'medium': '#d97706',
    'poor': '#dc2626',
    'none': '#9ca3af',
}


def _safe_name(value):
    return re.sub(r'[^A-Za-z0-9_-]+', '_', str(value)).strip('_')


def _styles():
    styles = getSampleStyleSheet()
    return {
        'title': ParagraphStyle('CustomTitle', parent=styles['Heading1'], fontSize=12, alignment=1, spaceAfter=2),
        'subtitle': ParagraphStyle('CustomSubTitle', parent=styles['Normal'], fontSize=10, alignment=1,
                                   spaceAfter=2),
        'info': ParagraphStyle('InfoStyle', parent=styles['Normal'], fontSize=9, alignment=1, spaceAfter=4),
        'cell': ParagraphStyle('CellStyle', parent=styles['Normal'], fontSize=8, leading=9),
        'heading': ParagraphStyle('SectionTitle', parent=styles['Normal'], fontSize=9, leading=10,
                                  fontName='Helvetica-Bold'),
    }


TABLE_STYLE = [
    ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
    ('FONTSIZE', (0, 0), (-1, -1), 8),
    ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
    ('ALIGN', (1, 0), (-1, -1), 'CENTER'),
    ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
    ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
    ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
    ('TOPPADDING', (0, 0), (-1, -1), 2),
    ('BOTTOMPADDING', (0, 0), (-1, -1), 2),
]


def create_score_graph(labels, values, bands):
    """Bar graph of normalized 0-10 scores, coloured by rating band."""
    plt.rcParams['figure.dpi'] = 300
    fig, ax = plt.subplots(figsize=(10, 4))
    bars = ax.bar(labels, values, color=[BAND_COLOURS[b] for b in bands])

    ax.set_ylim(0, 10)
    plt.xticks(fontsize=9)
    plt.yticks(fontsize=9)

    for bar, value in zip(bars, values):
        ax.text(bar.get_x() + bar.get_width() / 2.0, bar.get_height(),
                format_rating(value), ha='center', va='bottom', fontsize=9)

    ax.grid(True, axis='y', linestyle='--', alpha=0.7)
    plt.tight_layout()

    buf = io.BytesIO()
    plt.savefig(buf, format='png', bbox_inches='tight', dpi=300)
    plt.close(fig)
    buf.seek(0)
    return buf


def _footer(canvas, doc):
    canvas.saveState()
    canvas.setFont("Helvetica", 7)
    canvas.setFillColor(colors.gray)
    canvas.drawString(25, 20, f"{COLLEGE_NAME} - Faculty Feedback")
    canvas.drawRightString(doc.pagesize[0] - 25, 20, f"Page {doc.page}")
    canvas.restoreState()


def _build(filename, elements):
    os.makedirs(REPORTS_FOLDER, exist_ok=True)
    filepath = os.path.abspath(os.path.join(REPORTS_FOLDER, filename))
    doc = SimpleDocTemplate(filepath, pagesize=A4, rightMargin=20, leftMargin=20, topMargin=20, bottomMargin=40)
    try:
        doc.build(elements, onFirstPage=_footer, onLaterPages=_footer)
        logger.info(f"Report saved: {filepath}")
        return filepath
    except Exception as e:
        logger.error(f"PDF generation failed: {str(e)}")
        raise


def _header(styles, title, info):
    return [
        Paragraph(COLLEGE_NAME, styles['title']),
        Paragraph(title, styles['subtitle']),
        Paragraph(info, styles['info']),
        Spacer(1, 3),
    ]


def generate_form_report_pdf(report):
    """Single-form report: per-question table, graph and comments."""
    form = report['form']
    styles = _styles()
    logger.info(f"Generating form report for {form['id']}")

    division = form['division'] or 'Honours'
    info = (f"Academic year: {form['academic_year']}    Course: {form['course']}    "
            f"Semester: {form['semester']}    Division: {division}"
            + (f"    Batch: {form['batch']}" if form.get('batch') else ''))
    elements = _header(styles, f"{form['subject_name']} - {form['faculty_name']}", info)
    elements.append(Paragraph(
        f"Responses: {report['response_count']}    Overall rating: {format_rating(report['average'])}/10",
        styles['info']))

    table_data = [['#', 'Question', 'Result', 'Score /10', 'Answers']]
    for param in report['parameters']:
        table_data.append([
            str(param['index']),
            Paragraph(param['text'], styles['cell']),
            param['display'],
            format_rating(param['normalized']),
            str(param['count']),
        ])
    table = Table(table_data, colWidths=[20, 330, 70, 60, 50])
    table.setStyle(TableStyle(TABLE_STYLE))
    elements.append(table)
    elements.append(Spacer(1, 5))

    if report['response_count']:
        graph = create_score_graph(
            [f"Q{p['index']}" for p in report['parameters']],
            [p['normalized'] for p in report['parameters']],
            [p['band'] for p in report['parameters']],
        )
        img = Image(graph)
        img.drawWidth = A4[0] - 50
        img.drawHeight = 2.5 * inch
        elements.append(img)
        elements.append(Spacer(1, 5))

    if report['comments']:
        elements.append(Paragraph("Comments:", styles['heading']))
        for comment in report['comments']:
            elements.append(Paragraph(f"- {comment['text']}", styles['cell']))

    return _build(f"form_report_{_safe_name(form['subject_name'])}_{_safe_name(form['id'])}.pdf", elements)


def generate_faculty_report_pdf(report):
    """Faculty report: one row per form and the response-weighted overall rating."""
    styles = _styles()
    logger.info(f"Generating faculty report for {report['faculty_email']}")

    elements = _header(styles, f"Faculty Feedback Report - {report['faculty_name']}",
                       f"Forms: {report['form_count']}    Responses: {report['response_count']}    "
                       f"Overall rating: {format_rating(report['average'])}/10")

    table_data = [['Subject', 'Class', 'Type', 'Responses', 'Rating /10']]
    for stats in report['forms']:
        form = stats['form']
        klass = f"Sem {form['semester']} {form['course']} {form['division'] or 'Honours'}"
        table_data.append([
            Paragraph(form['subject_name'], styles['cell']),
            klass,
            f"Lab {form['batch']}" if form.get('batch') else 'Theory',
            str(stats['response_count']),
            format_rating(stats['average']),
        ])
    table = Table(table_data, colWidths=[200, 130, 70, 60, 70])
    table.setStyle(TableStyle(TABLE_STYLE))
    elements.append(table)
    elements.append(Spacer(1, 5))

    if report['forms']:
        graph = create_score_graph(
            [f"F{idx + 1}" for idx in range(len(report['forms']))],
            [s['average'] for s in report['forms']],
            [s['band'] for s in report['forms']],
        )
        img = Image(graph)
        img.drawWidth = A4[0] - 50
        img.drawHeight = 2.5 * inch
        elements.append(img)
        elements.append(Spacer(1, 3))
        for idx, stats in enumerate(report['forms']):
            elements.append(Paragraph(f"F{idx + 1}: {stats['form']['subject_name']}", styles['cell']))

    return _build(f"faculty_report_{_safe_name(report['faculty_email'])}.pdf", elements)
