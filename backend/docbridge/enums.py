from enum import Enum

class DocumentType(str, Enum):
    INVOICE = "invoice"
    PURCHASE_ORDER = "purchase_order"
    SALES_CONTRACT = "sales_contract"
    SPREADSHEET = "spreadsheet"
    GENERIC = "generic"

class DocumentStatus(str, Enum):
    SENT = "sent"
    DELIVERED = "delivered"
    PROCESSED = "processed"

class SuggestionMethod(str, Enum):
    EXACT_MATCH = "exact_match"
    PATTERN_BASED = "pattern_based"
    SIMILARITY_BASED = "similarity_based"
    NONE = "none"
    ERROR = "error"

class ColumnDataType(str, Enum):
    EMPTY = "empty"
    DATE = "date"
    INTEGER = "integer"
    DECIMAL = "decimal"
    EMAIL = "email"
    PHONE = "phone"
    URL = "url"
    TEXT = "text"
