from enum import Enum
from typing import Optional


class DataType(Enum):
    TEXT = "text"
    EMBEDDINGS = "embeddings"
    JSON = "json"
    PDF = "pdf"
    CHUNKS = "chunks"
    BOOLEAN = "boolean"
    NUMBER = "number"

    @staticmethod
    def parse(value) -> 'DataType':
        """Accept an enum member, its wire value ('text') or its name ('TEXT')."""
        if isinstance(value, DataType):
            return value
        if isinstance(value, str):
            try:
                return DataType(value.lower())
            except ValueError:
                pass
        raise ValueError(f"Unknown data type: {value!r}")


class NodeCategory(Enum):
    # Wire values match the editor's node type tags.
    INPUT = "input"
    PROCESSING = "processing"
    RETRIEVAL = "retrieval"
    LANGUAGE_MODEL = "llm"
    LOGIC = "logic"
    OUTPUT = "output"

    @staticmethod
    def parse(value) -> 'NodeCategory':
        if isinstance(value, NodeCategory):
            return value
        if isinstance(value, str):
            lowered = value.lower()
            for category in NodeCategory:
                if lowered in (category.value, category.name.lower()):
                    return category
            if lowered in ("languagemodel", "language-model"):
                return NodeCategory.LANGUAGE_MODEL
        raise ValueError(f"Unknown node category: {value!r}")

    @property
    def display_name(self) -> str:
        return _CATEGORY_DISPLAY[self]


_CATEGORY_DISPLAY = {
    NodeCategory.INPUT: "Input",
    NodeCategory.PROCESSING: "Processing",
    NodeCategory.RETRIEVAL: "Retrieval",
    NodeCategory.LANGUAGE_MODEL: "LanguageModel",
    NodeCategory.LOGIC: "Logic",
    NodeCategory.OUTPUT: "Output",
}


class NodeKind(Enum):
    """Finer-grained node behaviour, selected explicitly rather than from labels."""
    PDF_INPUT = "pdf-input"
    TEXT_INPUT = "text-input"
    PDF_TEXT_EXTRACTOR = "pdf-text-extractor"
    TEXT_CHUNKER = "text-chunker"
    EMBEDDING_GENERATOR = "embedding-generator"
    VECTOR_STORE = "vector-store"
    SEMANTIC_SEARCH = "semantic-search"
    LLM_GENERATOR = "llm-generator"
    PROMPT_BUILDER = "prompt-builder"
    CONDITIONAL_BRANCH = "conditional-branch"
    DATA_MERGER = "data-merger"
    TEXT_RESPONSE = "text-response"
    JSON_EXPORT = "json-export"

    @staticmethod
    def parse(value) -> Optional['NodeKind']:
        if value is None or isinstance(value, NodeKind):
            return value
        if isinstance(value, str):
            lowered = value.lower().replace("_", "-")
            for kind in NodeKind:
                if lowered == kind.value:
                    return kind
        raise ValueError(f"Unknown node kind: {value!r}")
