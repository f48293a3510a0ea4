# ==============================================
# Records (Data Classes)
# ==============================================
#
# PURPOSE:
#   Data classes for the records that flow through a
#   reclassification run: the organization and individual
#   records read from the store, the mutation requests sent
#   back to it, and the per-record mutation outcomes.
#
# WHY THIS FILE EXISTS:
#   Both record store backends (MongoDB, MySQL) build these
#   objects, so the evaluation and execution stages never see
#   backend-specific documents or rows.
#
# CLASSES:
# --------
# - IndividualRecord (dataclass)
#     The person-level record linked to one organization.
#
# - OrganizationRecord (dataclass)
#     The record being evaluated. Arrives with its child-existence
#     data and its associated individuals already joined by the store.
#
# - MutationRequest (dataclass)
#     Set one organization's classification to a new id.
#
# - MutationOutcome (dataclass)
#     success / message for one organization after the bulk mutation.
#
# - MutationInterrupted (exception)
#     Raised by a store when the bulk mutation dies partway; carries
#     the outcomes gathered so far.
#
# ==============================================

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List


@dataclass
class IndividualRecord:
    """An individual associated with an organization record."""
    id: str
    owner_id: Optional[str] = None
    currency_code: Optional[str] = None
    reports_to_id: Optional[str] = None
    organization_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndividualRecord":
        """
        Build an IndividualRecord from a store document or row.

        Accepts either "id" or MongoDB's "_id" as the identity key.
        """
        return cls(
            id=_as_id(data.get("id", data.get("_id"))),
            owner_id=_as_id(data.get("owner_id")),
            currency_code=data.get("currency_code"),
            reports_to_id=_as_id(data.get("reports_to_id")),
            organization_id=_as_id(data.get("organization_id")),
        )


@dataclass
class OrganizationRecord:
    """
    An organization record with its joined hierarchy data.

    Only the existence of children matters for eligibility, so stores may
    fill child_ids with a single id (or set has_children directly) instead
    of the full child set.
    """
    id: str
    is_portal_linked: bool = False
    owner_id: Optional[str] = None
    currency_code: Optional[str] = None
    parent_id: Optional[str] = None
    classification_id: Optional[str] = None
    child_ids: set = field(default_factory=set)
    individuals: List[IndividualRecord] = field(default_factory=list)

    @property
    def has_children(self) -> bool:
        return bool(self.child_ids)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrganizationRecord":
        """
        Build an OrganizationRecord from a store document or row.

        Args:
            data: Dictionary with organization fields, plus optional
                  "child_ids" (iterable) and "individuals" (list of dicts)

        Returns:
            An OrganizationRecord instance
        """
        return cls(
            id=_as_id(data.get("id", data.get("_id"))),
            is_portal_linked=bool(data.get("is_portal_linked", False)),
            owner_id=_as_id(data.get("owner_id")),
            currency_code=data.get("currency_code"),
            parent_id=_as_id(data.get("parent_id")),
            classification_id=_as_id(data.get("classification_id")),
            child_ids={_as_id(child) for child in data.get("child_ids") or ()},
            individuals=[IndividualRecord.from_dict(ind) for ind in data.get("individuals") or ()],
        )


@dataclass
class MutationRequest:
    """Reclassify one organization. No other field is touched."""
    organization_id: str
    classification_id: str


@dataclass
class MutationOutcome:
    """Result of one organization's mutation. message is set iff it failed."""
    organization_id: str
    success: bool
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "organization_id": self.organization_id,
            "success": self.success,
            "message": self.message,
        }


class MutationInterrupted(RuntimeError):
    """
    The bulk mutation stopped partway through.

    outcomes holds the records already written (or rejected) before the
    failure, in request order. Requests after them were never attempted.
    """

    def __init__(self, outcomes: List[MutationOutcome], error: Exception):
        self.outcomes = list(outcomes)
        self.error = error
        super().__init__(f"mutation stopped after {len(self.outcomes)} records: {error}")


def _as_id(value: Any) -> Optional[str]:
    # Empty strings count as "no reference", the way lookup fields are blanked.
    if value is None or value == "":
        return None
    return str(value)
