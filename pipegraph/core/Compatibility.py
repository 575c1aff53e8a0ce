from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from .Types import DataType


# Directed relation: source type -> target types it may feed.
# Exact matches are always allowed and are not listed here.
DEFAULT_RULES: Mapping[DataType, frozenset] = MappingProxyType({
    DataType.PDF:        frozenset({DataType.TEXT}),
    DataType.TEXT:       frozenset({DataType.CHUNKS}),
    DataType.CHUNKS:     frozenset({DataType.EMBEDDINGS, DataType.TEXT}),
    DataType.EMBEDDINGS: frozenset(),
    DataType.JSON:       frozenset({DataType.TEXT}),
    DataType.BOOLEAN:    frozenset({DataType.TEXT}),
    DataType.NUMBER:     frozenset({DataType.TEXT}),
})


class CompatibilityMatrix:
    """
    Decides whether a port of one data type may feed a port of another.

    The relation is intentionally not symmetric (pdf -> text is allowed,
    text -> pdf is not) and not transitively closed (pdf -> chunks is not
    implied by pdf -> text -> chunks).
    """

    def __init__(self, rules: Optional[Mapping[DataType, Iterable[DataType]]] = None):
        source = DEFAULT_RULES if rules is None else rules
        self._rules = {DataType.parse(k): frozenset(DataType.parse(t) for t in v)
                       for k, v in source.items()}

    def targets_for(self, source: DataType) -> frozenset:
        return self._rules.get(source, frozenset())

    def is_compatible(self, source: DataType, target: DataType) -> bool:
        if source is target:
            return True
        return target in self.targets_for(source)

    def extended(self, source: DataType, *targets: DataType) -> 'CompatibilityMatrix':
        """Return a new matrix with extra targets allowed for ``source``."""
        rules = dict(self._rules)
        rules[source] = rules.get(source, frozenset()) | frozenset(targets)
        return CompatibilityMatrix(rules)

    def as_dict(self) -> dict:
        return {k.value: sorted(t.value for t in v) for k, v in self._rules.items()}


DEFAULT_MATRIX = CompatibilityMatrix()
