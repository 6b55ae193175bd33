"""Invoice, payment, expense and analytics report factories."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from typing import Any

from faker import Faker

from seedline.factories.base import (
    EntityFactory,
    FieldGenerator,
    WeightedChoice,
    iso,
    money,
    past_datetime,
)

GST_RATE = 0.10

SERVICE_RATES: tuple[tuple[str, float], ...] = (
    ("Personal Care Services", 45.50),
    ("Meal Preparation", 38.00),
    ("Medication Management", 42.00),
    ("Transportation Services", 35.00),
    ("Social Support", 40.00),
    ("Domestic Assistance", 36.50),
    ("Respite Care", 48.00),
)

EXPENSE_CATEGORIES = WeightedChoice(
    {"travel": 40, "meals": 20, "supplies": 15, "equipment": 10, "training": 10, "other": 5}
)


def _line_items(fake: Faker, record: dict[str, Any]) -> list[dict[str, Any]]:
    items: list[dict[str, Any]] = []
    for _ in range(fake.random_int(1, 5)):
        description, rate = fake.random_element(SERVICE_RATES)
        quantity = fake.random_int(1, 40)
        items.append(
            {
                "description": description,
                "quantity": quantity,
                "unit": "hours",
                "rate": rate,
                "total": round(quantity * rate, 2),
            }
        )
    return items


class InvoiceFactory(EntityFactory):
    """Invoices with line items and 10% GST."""

    entity_type = "invoice"

    def field_generators(self) -> dict[str, FieldGenerator]:
        return {
            "invoiceNumber": self._invoice_number,
            "issueDate": lambda fake, record: iso(past_datetime(fake, days=180).date()),
            "dueDate": lambda fake, record: iso(
                date.fromisoformat(record["issueDate"])
                + timedelta(days=fake.random_element((7, 14, 30)))
            ),
            "lineItems": _line_items,
            "subtotal": lambda fake, record: round(
                sum(item["total"] for item in record["lineItems"]), 2
            ),
            "gst": lambda fake, record: round(record["subtotal"] * GST_RATE, 2),
            "totalAmount": lambda fake, record: round(record["subtotal"] + record["gst"], 2),
            "status": WeightedChoice({"paid": 70, "sent": 20, "overdue": 5, "draft": 5}),
            "paymentTerms": lambda fake, record: fake.random_element(
                ("Net 7", "Net 14", "Net 30", "Due on receipt")
            ),
        }

    @staticmethod
    def _invoice_number(fake: Faker, record: dict[str, Any]) -> str:
        return f"INV-{datetime.now(UTC):%Y%m}-{fake.numerify('######')}"


class PaymentFactory(EntityFactory):
    entity_type = "payment"

    def field_generators(self) -> dict[str, FieldGenerator]:
        return {
            "amount": lambda fake, record: money(fake, 50.0, 5000.0),
            "paymentDate": lambda fake, record: iso(past_datetime(fake, days=90).date()),
            "paymentMethod": WeightedChoice(
                {"bank-transfer": 50, "direct-debit": 25, "credit-card": 20, "cash": 5}
            ),
            "reference": lambda fake, record: fake.bothify("PAY-########"),
            "status": WeightedChoice({"completed": 85, "pending": 10, "failed": 5}),
        }


class ExpenseFactory(EntityFactory):
    entity_type = "expense"

    def field_generators(self) -> dict[str, FieldGenerator]:
        return {
            "category": EXPENSE_CATEGORIES,
            "amount": self._amount,
            "date": lambda fake, record: iso(past_datetime(fake, days=60).date()),
            "description": lambda fake, record: fake.sentence(nb_words=6),
            "status": WeightedChoice(
                {"approved": 45, "pending": 30, "reimbursed": 15, "rejected": 10}
            ),
            "kilometres": lambda fake, record: (
                fake.random_int(5, 250) if record["category"] == "travel" else None
            ),
        }

    @staticmethod
    def _amount(fake: Faker, record: dict[str, Any]) -> float:
        if record.get("category") == "equipment":
            return money(fake, 100.0, 2500.0)
        return money(fake, 5.0, 300.0)


class AnalyticsReportFactory(EntityFactory):
    entity_type = "analytics_report"

    def field_generators(self) -> dict[str, FieldGenerator]:
        return {
            "reportType": lambda fake, record: fake.random_element(
                ("revenue", "utilisation", "care-outcomes", "workforce")
            ),
            "periodStart": lambda fake, record: iso(past_datetime(fake, days=120).date()),
            "periodEnd": lambda fake, record: iso(
                date.fromisoformat(record["periodStart"]) + timedelta(days=30)
            ),
            "metrics": lambda fake, record: {
                "revenue": money(fake, 1000.0, 250000.0),
                "billableHours": fake.random_int(50, 5000),
                "activeClients": fake.random_int(5, 500),
                "incidentRate": round(fake.pyfloat(min_value=0, max_value=5, right_digits=2), 2),
            },
        }
