import pytest

from docbridge.enums import DocumentType
from docbridge.services.business_field_extractor import BusinessFieldExtractor, calculate_confidence
from docbridge.services.text_extractor import TextExtractionService


@pytest.fixture
def extractor():
    return BusinessFieldExtractor()


class TestRuleExtraction:
    """Test type-specific regex rule sets."""

    def test_invoice_fields(self, extractor):
        text = "Invoice Number: INV-2024-001\nTotal Amount: $1500.00"

        data = extractor.extract(text, DocumentType.INVOICE)

        assert data == {"invoice_number": "INV-2024-001", "total_amount": 1500.00}

    def test_type_detected_when_not_given(self, extractor):
        data = extractor.extract("Invoice Number: INV-5\nTotal Amount: 20")

        assert data["invoice_number"] == "INV-5"
        assert data["total_amount"] == 20.0

    def test_purchase_order_fields(self, extractor):
        text = "Supplier: Acme Supplies\nPO Number: PO-77"

        data = extractor.extract(text, DocumentType.PURCHASE_ORDER)

        assert data == {"supplier": "Acme Supplies", "order_number": "PO-77"}

    def test_sales_contract_fields(self, extractor):
        text = "Product: Steel Bolts\nQuantity: 100\nPrice: $2.50\nDelivery Date: 2024-03-01"

        data = extractor.extract(text, "sales_contract")

        assert data["product_description"] == "Steel Bolts"
        assert data["quantity"] == 100.0
        assert data["unit_price"] == 2.5
        assert data["delivery_date"] == "2024-03-01"

    def test_unmatched_rules_produce_no_fields(self, extractor):
        assert extractor.extract("nothing relevant here", DocumentType.INVOICE) == {}

    def test_generic_fields_lowercase_keys(self, extractor):
        data = extractor.extract("Color: Red\nSize = Large", DocumentType.GENERIC)

        assert data == {"color": "Red", "size": "Large"}


class TestStructuredExtraction:
    """Test the structured-data path for tabular documents."""

    def test_csv_amount_total(self, extractor, tmp_path):
        path = tmp_path / "items.csv"
        path.write_text("name,amount\nWidget,10\nGadget,20\n")
        text = TextExtractionService.extract(str(path))

        data = extractor.extract(text)

        assert data["Sheet1_headers"] == ["name", "amount"]
        assert data["Sheet1_row_count"] == 2
        assert data["Sheet1_column_count"] == 2
        assert data["Sheet1_amount_total"] == 30
        assert data["Sheet1_amount_count"] == 2
        assert data["Sheet1_sample_data"] == [["Widget", "10"], ["Gadget", "20"]]

    def test_structured_path_ignores_declared_type(self, extractor, tmp_path):
        path = tmp_path / "contacts.csv"
        path.write_text("contact,signed\nbuyer@globex.com,2024-01-15\n")
        text = TextExtractionService.extract(str(path))

        data = extractor.extract(text, DocumentType.INVOICE)

        assert data["Sheet1_contact"] == "buyer@globex.com"
        assert data["Sheet1_signed_dates"] == "2024-01-15"
        assert "invoice_number" not in data

    def test_malformed_structured_data_falls_back_to_rules(self, extractor):
        text = "Invoice Number: INV-7\n--- Structured Data ---\n{not json"

        data = extractor.extract(text, DocumentType.INVOICE)

        assert data == {"invoice_number": "INV-7"}

    @pytest.mark.parametrize("block", [
        '{"Sheet1": {"summary": ["x"]}}',
        '{"Sheet1": {"headers": "name", "rows": []}}',
        '{"Sheet1": {"rows": {"a": 1}}}',
        '{"Sheet1": {"summary": {"dataTypes": {"type": "integer"}}}}',
        '{"Sheet1": {"summary": {"dataTypes": ["integer"]}}}',
    ])
    def test_wrongly_shaped_structured_data_falls_back_to_rules(self, extractor, tmp_path, block):
        path = tmp_path / "invoice.txt"
        path.write_text(f"Invoice Number: INV-1\n--- Structured Data ---\n{block}")
        text = TextExtractionService.extract(str(path))

        data = extractor.extract(text, "invoice")

        assert data == {"invoice_number": "INV-1"}


class TestCalculateConfidence:

    def test_no_fields(self):
        assert calculate_confidence({}) == 0.0

    def test_important_and_plain_fields(self):
        assert calculate_confidence({"total_amount": 1500.0, "invoice_number": "INV-1"}) == pytest.approx(0.5)

    def test_capped_at_one(self):
        data = {"product_description": "Bolts", "quantity": 1, "unit_price": 2, "total_amount": 2, "x": 1}

        assert calculate_confidence(data) == 1.0
