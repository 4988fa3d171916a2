"""
Error taxonomy for document ingestion and mapping learning.

Extraction errors abort the background pipeline for a document; structured
data parse errors are recovered inside the field extractor; a missing
mapping is a hard failure for feedback callers.
"""


class DocBridgeError(Exception):
    """Base class for all DocBridge errors"""
    pass


class UnsupportedFormatError(DocBridgeError):
    """File extension is outside the supported set"""

    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(f"Unsupported file type: {extension or '<none>'}")


class ExtractionError(DocBridgeError):
    """Underlying parser could not read the file"""
    pass


class StructuredDataParseError(DocBridgeError):
    """Embedded structured-data JSON block is malformed"""
    pass


class MappingNotFoundError(DocBridgeError):
    """Feedback was applied to a mapping id that does not exist"""

    def __init__(self, mapping_id: int):
        self.mapping_id = mapping_id
        super().__init__(f"Mapping {mapping_id} not found")


class DocumentNotFoundError(DocBridgeError):
    """Document id does not exist"""

    def __init__(self, document_id: int):
        self.document_id = document_id
        super().__init__(f"Document {document_id} not found")


class DocumentNotReadyError(DocBridgeError):
    """Document has not finished processing and cannot be reviewed yet"""

    def __init__(self, document_id: int, status: str):
        self.document_id = document_id
        self.status = status
        super().__init__(f"Document {document_id} is not yet processed (status: {status})")
