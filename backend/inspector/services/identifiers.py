"""Identifier safety layer.

Relation names cannot be bound as query parameters in most SQL dialects, so
they end up inside generated query text. A request-supplied name is only
accepted when it exactly matches an entry of the published allow-list, and
what gets embedded is the catalog's own copy of that name, never the raw
input.
"""

from dataclasses import dataclass

from sqlglot import exp

from inspector.core.errors import InvalidRelationError
from inspector.schemas.inspector import RelationKind
from inspector.services.gatekeeper import AllowListGatekeeper


@dataclass(frozen=True)
class CertifiedRelation:
    """A relation name taken from the published catalog.

    Adapters only accept this type where a name reaches query construction.
    """

    name: str
    kind: RelationKind


class IdentifierSafetyLayer:
    def __init__(self, gatekeeper: AllowListGatekeeper):
        self._gatekeeper = gatekeeper

    def certify(self, raw_name: str) -> CertifiedRelation:
        """Resolve ``raw_name`` to its catalog entry.

        Raises:
            NotReadyError: The catalog has not been published.
            InvalidRelationError: ``raw_name`` is not byte-identical to an
                allow-listed relation.
        """
        self._gatekeeper.catalog.require()
        descriptor = self._gatekeeper.resolve(raw_name)
        if descriptor is None:
            raise InvalidRelationError(raw_name)
        return CertifiedRelation(name=descriptor.name, kind=descriptor.kind)


def relation_table(relation: CertifiedRelation) -> exp.Table:
    """sqlglot table node for a certified relation, always quoted."""
    return exp.Table(this=exp.to_identifier(relation.name, quoted=True))


def quote_relation(relation: CertifiedRelation, dialect: str) -> str:
    """Render the relation as a quoted identifier in ``dialect``."""
    return exp.to_identifier(relation.name, quoted=True).sql(dialect=dialect)
