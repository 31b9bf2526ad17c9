"""
Payment Receipt PDF

Renders an official payment receipt from a deal, one of its payments and the
receipt metadata issued for that payment. Uses ReportLab for deterministic
PDF generation.

Output Structure:
1. Header (company, title, receipt number, duplicate label on reprints)
2. Amount received, in figures and in words
3. Payment information
4. Transaction details
5. Parties
6. Notes (when present)
7. Signature blocks
8. Footer (generated at / by)

The receipt number and version come from the metadata; the PDF never assigns
numbers itself.
"""

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional, Union
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import (
    HRFlowable,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from core.deals.schema import Deal, DealPayment
from core.receipts.schema import ReceiptMetadata
from utils.formatting import format_currency, format_percent


# =============================================================================
# Result Types
# =============================================================================

@dataclass
class ReceiptRenderSuccess:
    """Returned when the receipt PDF was written."""
    path: Path
    receipt_number: str
    version: int


@dataclass
class ReceiptRenderFailure:
    """Returned when there is nothing to render."""
    reason: str


ReceiptRenderResult = Union[ReceiptRenderSuccess, ReceiptRenderFailure]


# =============================================================================
# Amount in Words (Crore / Lakh / Thousand)
# =============================================================================

_ONES = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine"]
_TEENS = [
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen",
    "Fifteen", "Sixteen", "Seventeen", "Eighteen", "Nineteen",
]
_TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]


def _below_thousand(n: int) -> str:
    if n == 0:
        return ""
    if n < 10:
        return _ONES[n]
    if n < 20:
        return _TEENS[n - 10]
    if n < 100:
        return _TENS[n // 10] + (" " + _ONES[n % 10] if n % 10 else "")
    rest = _below_thousand(n % 100)
    return _ONES[n // 100] + " Hundred" + (" " + rest if rest else "")


def number_to_words(amount: float) -> str:
    """
    Spell a whole amount using South Asian grouping.

    1,25,50,000 -> "One Crore Twenty Five Lakh Fifty Thousand".
    Fractions are dropped.
    """
    n = int(abs(amount))
    if n == 0:
        return "Zero"

    crore, n = divmod(n, 10_000_000)
    lakh, n = divmod(n, 100_000)
    thousand, remainder = divmod(n, 1_000)

    parts = []
    if crore:
        parts.append(f"{number_to_words(crore)} Crore")
    if lakh:
        parts.append(f"{_below_thousand(lakh)} Lakh")
    if thousand:
        parts.append(f"{_below_thousand(thousand)} Thousand")
    if remainder:
        parts.append(_below_thousand(remainder))
    return " ".join(parts)


def amount_in_words(amount: float) -> str:
    """Amount line as printed on the receipt."""
    return f"{number_to_words(amount)} Rupees Only"


# =============================================================================
# Palette and Styles
# =============================================================================

class Palette:
    """Print-friendly receipt colours."""
    BLACK = colors.Color(0.1, 0.1, 0.1)
    CHARCOAL = colors.Color(0.2, 0.2, 0.22)
    GRAY = colors.Color(0.5, 0.5, 0.5)
    LIGHT_GRAY = colors.Color(0.85, 0.85, 0.85)

    ACCENT = colors.Color(0.15, 0.25, 0.4)
    SUCCESS = colors.Color(0.13, 0.55, 0.3)
    DUPLICATE = colors.Color(0.75, 0.2, 0.15)
    WATERMARK = colors.Color(0.92, 0.92, 0.92)


def get_receipt_styles():
    """Paragraph styles for the receipt."""
    styles = getSampleStyleSheet()

    styles.add(ParagraphStyle(
        name='CompanyName',
        parent=styles['Normal'],
        fontSize=20,
        leading=24,
        textColor=Palette.ACCENT,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold',
        letterSpacing=1.5,
    ))

    styles.add(ParagraphStyle(
        name='ReceiptTitle',
        parent=styles['Normal'],
        fontSize=13,
        leading=16,
        textColor=Palette.CHARCOAL,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold',
        spaceBefore=4,
    ))

    styles.add(ParagraphStyle(
        name='ReceiptNumber',
        parent=styles['Normal'],
        fontSize=10,
        leading=13,
        textColor=Palette.CHARCOAL,
        alignment=TA_CENTER,
        fontName='Helvetica',
    ))

    styles.add(ParagraphStyle(
        name='DuplicateLabel',
        parent=styles['Normal'],
        fontSize=9,
        leading=12,
        textColor=Palette.DUPLICATE,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold',
        spaceBefore=3,
    ))

    styles.add(ParagraphStyle(
        name='AmountFigure',
        parent=styles['Normal'],
        fontSize=22,
        leading=28,
        textColor=Palette.SUCCESS,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold',
    ))

    styles.add(ParagraphStyle(
        name='AmountWords',
        parent=styles['Normal'],
        fontSize=9,
        leading=12,
        textColor=Palette.CHARCOAL,
        alignment=TA_CENTER,
        fontName='Helvetica-Oblique',
    ))

    styles.add(ParagraphStyle(
        name='SectionTitle',
        parent=styles['Normal'],
        fontSize=11,
        leading=14,
        textColor=Palette.ACCENT,
        fontName='Helvetica-Bold',
        spaceBefore=10,
        spaceAfter=4,
    ))

    styles.add(ParagraphStyle(
        name='Cell',
        parent=styles['Normal'],
        fontSize=9,
        leading=12,
        textColor=Palette.BLACK,
        alignment=TA_LEFT,
        fontName='Helvetica',
    ))

    styles.add(ParagraphStyle(
        name='CellLabel',
        parent=styles['Normal'],
        fontSize=9,
        leading=12,
        textColor=Palette.GRAY,
        alignment=TA_LEFT,
        fontName='Helvetica',
    ))

    styles.add(ParagraphStyle(
        name='Signature',
        parent=styles['Normal'],
        fontSize=8,
        leading=10,
        textColor=Palette.GRAY,
        alignment=TA_CENTER,
        fontName='Helvetica',
    ))

    styles.add(ParagraphStyle(
        name='Footer',
        parent=styles['Normal'],
        fontSize=7,
        leading=9,
        textColor=Palette.GRAY,
        alignment=TA_RIGHT,
        fontName='Helvetica',
    ))

    return styles


# =============================================================================
# Generator
# =============================================================================

class ReceiptPDFGenerator:
    """
    Generates payment receipt PDFs.

    Usage:
        generator = ReceiptPDFGenerator(output_dir="data/receipts")
        result = generator.generate(deal, payment, metadata)
    """

    PAGE_WIDTH, PAGE_HEIGHT = A4
    MARGIN = 18*mm

    def __init__(
        self,
        output_dir: Union[str, Path] = "receipts",
        company_name: str = "AARAAZI",
        currency: str = "PKR",
    ):
        self.output_dir = Path(output_dir)
        self.company_name = company_name
        self.currency = currency
        self.styles = get_receipt_styles()
        self._current_metadata: Optional[ReceiptMetadata] = None

    def generate(
        self,
        deal: Optional[Deal],
        payment: Optional[DealPayment],
        metadata: Optional[ReceiptMetadata],
    ) -> ReceiptRenderResult:
        """
        Write the receipt PDF to output_dir.

        Returns:
            ReceiptRenderSuccess with the file path, or ReceiptRenderFailure
            when the deal, payment or metadata is missing
        """
        if metadata is None:
            return ReceiptRenderFailure("No receipt has been issued for this payment")
        if deal is None:
            return ReceiptRenderFailure(f"Deal {metadata.deal_id} not found")
        if payment is None:
            return ReceiptRenderFailure(f"Payment {metadata.payment_id} not found")

        self.output_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{metadata.receipt_number}-v{metadata.version}.pdf"
        output_path = self.output_dir / filename
        output_path.write_bytes(self.generate_to_buffer(deal, payment, metadata))

        return ReceiptRenderSuccess(
            path=output_path,
            receipt_number=metadata.receipt_number,
            version=metadata.version,
        )

    def generate_to_buffer(
        self,
        deal: Deal,
        payment: DealPayment,
        metadata: ReceiptMetadata,
    ) -> bytes:
        """Generate the PDF and return it as bytes (for streaming)."""
        buffer = BytesIO()
        self._build_document(deal, payment, metadata, buffer)
        return buffer.getvalue()

    def _build_document(
        self,
        deal: Deal,
        payment: DealPayment,
        metadata: ReceiptMetadata,
        buffer: BytesIO,
    ):
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=self.MARGIN,
            rightMargin=self.MARGIN,
            topMargin=self.MARGIN,
            bottomMargin=self.MARGIN,
            title=f"Payment Receipt - {metadata.receipt_number}",
            author=self.company_name,
            subject=f"Deal {deal.deal_number}",
        )
        self._current_metadata = metadata

        story = []
        story.extend(self._build_header(metadata))
        story.extend(self._build_amount(payment))
        story.extend(self._build_payment_info(payment))
        story.extend(self._build_transaction_details(deal))
        story.extend(self._build_parties(deal))
        story.extend(self._build_notes(payment))
        story.extend(self._build_signatures())
        story.extend(self._build_footer(metadata))

        doc.build(story, onFirstPage=self._draw_watermark, onLaterPages=self._draw_watermark)

    # =========================================================================
    # Page Drawing
    # =========================================================================

    def _draw_watermark(self, canvas_obj: canvas.Canvas, doc):
        """Diagonal DUPLICATE watermark on reprints."""
        metadata = self._current_metadata
        if metadata is None or not metadata.is_reprint:
            return
        canvas_obj.saveState()
        canvas_obj.setFont('Helvetica-Bold', 60)
        canvas_obj.setFillColor(Palette.WATERMARK)
        canvas_obj.translate(self.PAGE_WIDTH / 2, self.PAGE_HEIGHT / 2)
        canvas_obj.rotate(45)
        canvas_obj.drawCentredString(0, 0, f"DUPLICATE v{metadata.version}")
        canvas_obj.restoreState()

    # =========================================================================
    # Sections
    # =========================================================================

    def _money(self, amount: float) -> str:
        return format_currency(amount, self.currency)

    def _detail_table(self, rows: list) -> Table:
        data = [
            [Paragraph(label, self.styles['CellLabel']), Paragraph(escape(str(value)), self.styles['Cell'])]
            for label, value in rows
        ]
        table = Table(data, colWidths=[50*mm, None])
        table.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('LINEBELOW', (0, 0), (-1, -1), 0.25, Palette.LIGHT_GRAY),
            ('TOPPADDING', (0, 0), (-1, -1), 3),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
        ]))
        return table

    def _build_header(self, metadata: ReceiptMetadata) -> list:
        elements = [
            Paragraph(self.company_name, self.styles['CompanyName']),
            Paragraph("PAYMENT RECEIPT", self.styles['ReceiptTitle']),
            Paragraph(f"Receipt No: <b>{metadata.receipt_number}</b>", self.styles['ReceiptNumber']),
        ]
        if metadata.is_reprint:
            elements.append(Paragraph(
                f"DUPLICATE COPY - Version {metadata.version}",
                self.styles['DuplicateLabel']
            ))
        elements.append(Spacer(1, 4*mm))
        elements.append(HRFlowable(width="100%", thickness=1, color=Palette.ACCENT))
        elements.append(Spacer(1, 4*mm))
        return elements

    def _build_amount(self, payment: DealPayment) -> list:
        received = payment.settled_amount
        return [
            Paragraph("Amount Received", self.styles['ReceiptNumber']),
            Paragraph(self._money(received), self.styles['AmountFigure']),
            Paragraph(amount_in_words(received), self.styles['AmountWords']),
            Spacer(1, 4*mm),
        ]

    def _build_payment_info(self, payment: DealPayment) -> list:
        paid_date = payment.paid_date.strftime("%A, %d %B %Y") if payment.paid_date else "-"
        rows = [
            ("Date of Payment", paid_date),
            ("Payment Type", payment.type.replace("-", " ").title()),
            ("Payment Method", (payment.payment_method or "-").replace("-", " ").title()),
        ]
        if payment.reference_number:
            rows.append(("Reference Number", payment.reference_number))
        rows.append(("Payment Status", payment.status.value.title()))
        if payment.status.value == "partial":
            rows.append(("Scheduled Amount", self._money(payment.amount)))
        return [
            Paragraph("Payment Information", self.styles['SectionTitle']),
            self._detail_table(rows),
        ]

    def _build_transaction_details(self, deal: Deal) -> list:
        financial = deal.financial
        rows = [
            ("Deal Number", deal.deal_number),
            ("Property", deal.property_id),
            ("Agreed Price", self._money(financial.agreed_price)),
            ("Total Paid to Date", self._money(financial.total_paid)),
            ("Balance Remaining", self._money(financial.balance_remaining)),
        ]
        if financial.agreed_price > 0:
            paid_share = financial.total_paid / financial.agreed_price * 100
            rows.append(("Paid to Date", format_percent(paid_share)))
        return [
            Paragraph("Transaction Details", self.styles['SectionTitle']),
            self._detail_table(rows),
        ]

    def _build_parties(self, deal: Deal) -> list:
        rows = [
            ("Received From (Buyer)", deal.parties.buyer.name),
            ("On Behalf Of (Seller)", deal.parties.seller.name),
            ("Primary Agent", deal.agents.primary.name),
        ]
        if deal.agents.secondary:
            rows.append(("Secondary Agent", deal.agents.secondary.name))
        return [
            Paragraph("Parties", self.styles['SectionTitle']),
            self._detail_table(rows),
        ]

    def _build_notes(self, payment: DealPayment) -> list:
        if not payment.notes:
            return []
        return [
            Paragraph("Notes", self.styles['SectionTitle']),
            Paragraph(escape(payment.notes), self.styles['Cell']),
        ]

    def _build_signatures(self) -> list:
        line = "_" * 28
        table = Table(
            [
                [Paragraph(line, self.styles['Signature']), Paragraph(line, self.styles['Signature'])],
                [
                    Paragraph("Received By (Authorised Signatory)", self.styles['Signature']),
                    Paragraph("Paid By (Buyer)", self.styles['Signature']),
                ],
            ],
            colWidths=[(self.PAGE_WIDTH - 2 * self.MARGIN) / 2] * 2,
        )
        table.setStyle(TableStyle([('ALIGN', (0, 0), (-1, -1), 'CENTER')]))
        return [Spacer(1, 18*mm), table]

    def _build_footer(self, metadata: ReceiptMetadata) -> list:
        generated_at = metadata.generated_at.strftime("%d %b %Y %H:%M UTC")
        return [
            Spacer(1, 10*mm),
            HRFlowable(width="100%", thickness=0.5, color=Palette.LIGHT_GRAY),
            Paragraph(
                f"Generated {generated_at} by {escape(metadata.generated_by)} "
                f"| Version {metadata.version}",
                self.styles['Footer']
            ),
            Paragraph(
                "This is a computer-generated receipt and is valid without a stamp.",
                self.styles['Footer']
            ),
        ]
