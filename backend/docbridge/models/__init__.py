# Import and re-export all models so callers can use `from docbridge.models import X`

# Import Base from db module
from ..db import Base

# Import all models from their individual files
from .company import Company
from .document import Document
from .extracted_field import ExtractedField
from .field_correction import FieldCorrection
from .product_mapping import ProductMapping
from .mapping_model import MappingModel

# Ensure all models are available at package level
__all__ = [
    "Base",
    "Company",
    "Document",
    "ExtractedField",
    "FieldCorrection",
    "ProductMapping",
    "MappingModel",
]
