import os
import logging
from datetime import datetime
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet

from config import REPORTS_FOLDER, COLLEGE_NAME
from portal.models.feedback_form import FeedbackForm
from portal.models.response import FeedbackResponse
from portal.models.student import Student
from portal.services.eligibility import completion_matrix
from utils import upper

logger = logging.getLogger(__name__)


def pending_students(semester, course, batch=None):
    """
    Students of a semester/course who have not filled every form they are eligible for.

    Returns:
        Tuple of (matrix, pending) where pending is sorted by division, batch and name
    """
    forms = FeedbackForm.get_all(semester=semester, course=course, batch=batch)
    if not forms:
        return [], []

    responses = FeedbackResponse.get_all(form_ids=[f['id'] for f in forms], with_items=False)
    students = Student.get_all(semester=semester)
    matrix = completion_matrix(forms, students, responses)

    pending = [entry for entry in matrix if not entry['filled']]
    pending.sort(key=lambda e: (e['student']['division'], e['student']['batch'] or '', e['student']['name']))
    logger.info(f"Semester {semester} {course}: {len(matrix)} eligible students, {len(pending)} pending")
    return matrix, pending


def generate_non_submission_report(semester, course, batch=None):
    """
    Generate a PDF report of students who still have feedback forms to fill.

    Args:
        semester: The semester to filter by (1-8)
        course: The course code, regular or honours (e.g. "IT", "CYBER")
        batch: Optional lab batch to restrict the forms to
    """
    course = upper(course)
    matrix, pending = pending_students(semester, course, batch)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filename = f"non_submission_report_{course}_{semester}_{timestamp}.pdf"
    os.makedirs(REPORTS_FOLDER, exist_ok=True)
    pdf_path = os.path.abspath(os.path.join(REPORTS_FOLDER, filename))

    doc = SimpleDocTemplate(
        pdf_path,
        pagesize=letter,
        rightMargin=36,
        leftMargin=36,
        topMargin=36,
        bottomMargin=36
    )

    styles = getSampleStyleSheet()
    title_style = styles['Heading1']
    title_style.alignment = 1
    subtitle_style = styles['Heading2']
    subtitle_style.alignment = 1
    info_style = styles['Heading3']
    info_style.alignment = 1
    normal_style = styles['Normal']
    normal_style.alignment = 1

    content = [
        Paragraph(COLLEGE_NAME, title_style),
        Spacer(1, 12),
        Paragraph("Students With Pending Feedback", subtitle_style),
        Spacer(1, 12),
        Paragraph(f"Course: {course} | Semester: {semester}" + (f" | Batch: {upper(batch)}" if batch else ''),
                  info_style),
        Spacer(1, 12),
        Paragraph(f"Generated on: {datetime.now().strftime('%d-%m-%Y %H:%M:%S')}", normal_style),
        Spacer(1, 24),
    ]

    total = len(matrix)
    content.append(Paragraph(
        f"Eligible Students: {total} | Completed: {total - len(pending)} | Pending: {len(pending)}",
        normal_style
    ))
    content.append(Spacer(1, 24))

    if pending:
        table_data = [['#', 'Name', 'Email', 'Division', 'Batch', 'Filled']]
        for i, entry in enumerate(pending, 1):
            student = entry['student']
            table_data.append([
                i,
                student['name'],
                student['email'],
                student['division'],
                student['batch'] or '-',
                f"{entry['filled_count']}/{entry['total_count']}",
            ])

        table = Table(table_data, repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.lightblue),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
            ('GRID', (0, 0), (-1, -1), 1, colors.black),
        ]))
        content.append(table)
    elif total:
        content.append(Paragraph("All students have submitted their feedback!", info_style))
    else:
        content.append(Paragraph("No forms or eligible students found.", info_style))

    doc.build(content)
    logger.info(f"Report generated: {filename}")
    return pdf_path
