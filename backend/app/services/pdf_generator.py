"""
PDF Generator Service for Saifauto.

Generates the printable rental agreement handed to the customer at pickup.
"""

import io
from datetime import datetime
from typing import Any, Dict
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from app.core.config import get_settings
from app.models.booking import Booking

RULE_COLOR = colors.HexColor('#e0e0e0')
INK = colors.HexColor('#1a1a1a')


class PDFGenerator:
    """Generates rental contract PDFs."""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Add custom paragraph styles."""
        self.styles.add(ParagraphStyle(
            name='CompanyName',
            parent=self.styles['Heading1'],
            fontSize=24,
            spaceAfter=6,
            alignment=TA_CENTER,
            textColor=INK,
        ))
        self.styles.add(ParagraphStyle(
            name='ContractTitle',
            parent=self.styles['Normal'],
            fontSize=13,
            spaceAfter=20,
            alignment=TA_CENTER,
            textColor=colors.HexColor('#666666'),
        ))
        self.styles.add(ParagraphStyle(
            name='SectionHeader',
            parent=self.styles['Heading2'],
            fontSize=13,
            spaceBefore=16,
            spaceAfter=8,
            textColor=INK,
        ))
        self.styles.add(ParagraphStyle(
            name='FinePrint',
            parent=self.styles['Normal'],
            fontSize=8,
            textColor=colors.HexColor('#888888'),
            alignment=TA_CENTER,
            spaceBefore=20,
        ))

    def _field_table(self, rows: list[list[str]]) -> Table:
        table = Table(rows, colWidths=[2 * inch, 4.5 * inch])
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('TEXTCOLOR', (0, 0), (0, -1), colors.HexColor('#666666')),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
        ]))
        return table

    def _section(self, story: list, title: str):
        story.append(Paragraph(title, self.styles['SectionHeader']))
        story.append(HRFlowable(width="100%", thickness=1, color=RULE_COLOR))

    def generate_rental_contract(self, contract: Dict[str, Any]) -> bytes:
        """
        Generate the rental agreement PDF.

        Args:
            contract: Contract fields, see contract_data_for_booking()

        Returns:
            PDF bytes
        """
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=0.75 * inch,
            leftMargin=0.75 * inch,
            topMargin=0.75 * inch,
            bottomMargin=0.75 * inch,
            title=f"Rental Agreement {contract.get('contract_number', '')}",
        )

        story = []

        story.append(Paragraph("SAIFAUTO", self.styles['CompanyName']))
        story.append(Paragraph("Car Rental Agreement", self.styles['ContractTitle']))
        story.append(self._field_table([
            ["Contract No:", str(contract.get("contract_number", "-"))],
            ["Date:", self._format_datetime(contract.get("contract_date") or datetime.utcnow())],
        ]))

        self._section(story, "CUSTOMER INFORMATION")
        story.append(self._field_table([
            ["Name:", contract.get("customer_name") or "-"],
            ["Email:", contract.get("customer_email") or "-"],
            ["Phone:", contract.get("customer_phone") or "-"],
        ]))

        self._section(story, "RENTAL DETAILS")
        price = contract.get("total_price")
        story.append(self._field_table([
            ["Vehicle:", contract.get("vehicle") or "-"],
            ["License Plate:", contract.get("license_plate") or "-"],
            ["Pickup:", self._format_datetime(contract.get("start_date"))],
            ["Return:", self._format_datetime(contract.get("end_date"))],
            ["Pickup Location:", contract.get("pickup_location") or "-"],
            ["Return Location:", contract.get("dropoff_location") or "-"],
            ["Total Price:", f"{price} {get_settings().currency}" if price is not None else "-"],
        ]))

        notes = contract.get("notes")
        if notes:
            self._section(story, "NOTES")
            story.append(Paragraph(escape(notes), self.styles['Normal']))

        story.append(Spacer(1, 0.6 * inch))
        signatures = Table(
            [["_____________________________", "_____________________________"],
             ["Customer Signature", "Saifauto Representative"]],
            colWidths=[3.25 * inch, 3.25 * inch],
        )
        signatures.setStyle(TableStyle([
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('TEXTCOLOR', (0, 1), (-1, 1), colors.HexColor('#666666')),
        ]))
        story.append(signatures)

        story.append(Paragraph(
            f"Generated by Saifauto on {datetime.utcnow().strftime('%Y-%m-%d %H:%M UTC')}",
            self.styles['FinePrint']
        ))

        doc.build(story)
        buffer.seek(0)
        return buffer.read()

    def _format_datetime(self, dt: Any) -> str:
        """Format datetime for display."""
        if dt is None:
            return "-"
        if isinstance(dt, str):
            return dt[:16].replace("T", " ")
        if hasattr(dt, 'strftime'):
            return dt.strftime("%Y-%m-%d %H:%M")
        return str(dt)


def contract_data_for_booking(booking: Booking, notes: str = "") -> Dict[str, Any]:
    """Contract fields for a booking loaded with its car and client."""
    car, client = booking.car, booking.client
    return {
        "contract_number": f"SA-{booking.id:06d}",
        "contract_date": datetime.utcnow(),
        "customer_name": booking.customer_name,
        "customer_email": client.email if client else booking.email,
        "customer_phone": (client.phone if client else None) or booking.phone,
        "vehicle": f"{car.display_name} ({car.year})" if car else None,
        "license_plate": car.license_plate if car else None,
        "start_date": booking.start_date,
        "end_date": booking.end_date,
        "pickup_location": booking.pickup_location,
        "dropoff_location": booking.dropoff_location,
        "total_price": booking.total_price,
        "notes": notes,
    }


def get_pdf_generator() -> PDFGenerator:
    """Get PDF generator instance."""
    return PDFGenerator()
