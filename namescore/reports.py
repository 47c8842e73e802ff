import datetime
import io
import logging
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from .schemas import AnalysisResult

logger = logging.getLogger(__name__)

PRIMARY_COLOR = '#5B2E9B'


def _header_footer(canvas_obj, doc):
    canvas_obj.saveState()
    canvas_obj.setFont('Helvetica', 9)
    canvas_obj.drawString(doc.rightMargin, 0.75 * inch, f"Page {doc.page}")
    canvas_obj.restoreState()


def _styles():
    styles = getSampleStyleSheet()
    primary = HexColor(PRIMARY_COLOR)
    styles.add(ParagraphStyle(name='TitleStyle', fontSize=24, leading=28, alignment=TA_CENTER, spaceAfter=12,
                              fontName='Helvetica-Bold', textColor=primary))
    styles.add(ParagraphStyle(name='NameStyle', fontSize=18, leading=22, alignment=TA_CENTER, spaceAfter=16,
                              fontName='Helvetica'))
    styles.add(ParagraphStyle(name='ScoreStyle', fontSize=40, leading=46, alignment=TA_CENTER,
                              fontName='Helvetica-Bold', textColor=primary))
    styles.add(ParagraphStyle(name='ScoreLabelStyle', fontSize=14, leading=18, alignment=TA_CENTER, spaceAfter=12,
                              fontName='Helvetica', textColor=primary))
    styles.add(ParagraphStyle(name='SectionHeadingStyle', fontSize=14, leading=18, spaceBefore=15, spaceAfter=8,
                              fontName='Helvetica-Bold'))
    styles.add(ParagraphStyle(name='NormalBodyText', fontSize=10, leading=14, spaceAfter=6, fontName='Helvetica',
                              alignment=TA_JUSTIFY))
    styles.add(ParagraphStyle(name='RationaleStyle', fontSize=11, leading=16, spaceBefore=10, spaceAfter=12,
                              fontName='Helvetica-Oblique', alignment=TA_CENTER,
                              backColor=HexColor('#F9F7FD'), borderPadding=6))
    styles.add(ParagraphStyle(name='BulletStyle', fontSize=10, leading=14, leftIndent=36, bulletIndent=18,
                              spaceAfter=3, fontName='Helvetica'))
    styles.add(ParagraphStyle(name='FooterNoteStyle', fontSize=8, leading=10, alignment=TA_CENTER, spaceBefore=30,
                              fontName='Helvetica', textColor=HexColor('#999999')))
    return styles


def create_analysis_pdf(result: AnalysisResult, name: str, generated_on: Optional[datetime.date] = None) -> bytes:
    """Renders a name analysis as a one-document PDF report."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=letter,
                            rightMargin=inch, leftMargin=inch,
                            topMargin=inch, bottomMargin=inch,
                            title=f"Numerology Report - {name}")
    styles = _styles()
    generated_on = generated_on or datetime.date.today()

    story = [
        Paragraph("Numerology Report", styles['TitleStyle']),
        Paragraph(escape(name), styles['NameStyle']),
        Paragraph("Overall Score", styles['ScoreLabelStyle']),
        Paragraph(str(result.score), styles['ScoreStyle']),
        Paragraph(escape(result.score_label), styles['ScoreLabelStyle']),
        Paragraph(escape(result.short_rationale), styles['RationaleStyle']),
    ]
    if result.score != result.base_score:
        story.append(Paragraph(
            f"Base numerology score {result.base_score}, adjusted to {result.score}. "
            f"{escape(result.holistic_rationale)}",
            styles['NormalBodyText'],
        ))

    core = result.core_numbers
    breakdown = result.breakdown
    story.append(Paragraph("Core Numbers", styles['SectionHeadingStyle']))
    rows = (
        ("Life Path", core.life_path_number, breakdown.life_path),
        ("Destiny", core.destiny_number, breakdown.destiny),
        ("Soul Urge", core.soul_urge_number, breakdown.soul_urge),
        ("Personality", core.personality_number, breakdown.personality),
    )
    for title, number, points in rows:
        shown = number if number else "Not calculated"
        story.append(Paragraph(f"<b>{title}</b>: {shown} ({points} points)", styles['BulletStyle'], bulletText='•'))

    if result.positive_traits:
        story.append(Paragraph("Positive Traits", styles['SectionHeadingStyle']))
        for trait in result.positive_traits:
            story.append(Paragraph(escape(trait), styles['BulletStyle'], bulletText='•'))

    if result.challenges:
        story.append(Paragraph("Potential Challenges", styles['SectionHeadingStyle']))
        for challenge in result.challenges:
            story.append(Paragraph(escape(challenge), styles['BulletStyle'], bulletText='•'))

    if result.suggestions:
        story.append(Paragraph("Suggested Name Variations", styles['SectionHeadingStyle']))
        for suggestion in result.suggestions:
            story.append(Paragraph(
                f"<b>{escape(suggestion.suggested_name)}</b> ({suggestion.new_score}): {escape(suggestion.reason)}",
                styles['BulletStyle'], bulletText='•',
            ))

    story.append(Spacer(1, 0.2 * inch))
    story.append(Paragraph(f"Report generated by NameScore on {generated_on.isoformat()}", styles['FooterNoteStyle']))

    doc.build(story, onFirstPage=_header_footer, onLaterPages=_header_footer)
    pdf_bytes = buffer.getvalue()
    logger.info(f"Generated PDF report for '{name}' ({len(pdf_bytes)} bytes)")
    return pdf_bytes
