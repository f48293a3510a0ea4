# ==============================================
# Test Helpers
# ==============================================
#
# - make_org / make_individual: record factories with eligible defaults
# - InMemoryStore: record store double implementing the same
#   methods as MongoClient / MySQLClient
# ==============================================

from reclassifier.evaluation.records import IndividualRecord, MutationOutcome, OrganizationRecord


TARGET_ID = "cls-individual"
BUSINESS_ID = "cls-business"


def make_individual(individual_id="ind-1", **overrides) -> IndividualRecord:
    fields = {
        "id": individual_id,
        "owner_id": "owner-1",
        "currency_code": "USD",
        "reports_to_id": None,
        "organization_id": None,
    }
    fields.update(overrides)
    return IndividualRecord(**fields)


def make_org(org_id="org-1", individuals=None, **overrides) -> OrganizationRecord:
    """An organization that passes every rule unless overridden."""
    if individuals is None:
        individuals = [make_individual(f"ind-{org_id}", organization_id=org_id)]
    fields = {
        "id": org_id,
        "is_portal_linked": False,
        "owner_id": "owner-1",
        "currency_code": "USD",
        "parent_id": None,
        "classification_id": BUSINESS_ID,
        "child_ids": set(),
        "individuals": individuals,
    }
    fields.update(overrides)
    return OrganizationRecord(**fields)


class InMemoryStore:
    """
    Record store double.

    organizations: list of OrganizationRecord (with individuals attached)
    extra_individuals: individuals that belong to no streamed organization
    failing_ids: organization ids whose mutation fails
    """

    def __init__(self, organizations=(), extra_individuals=(), failing_ids=None,
                 classifications=None, currency=True):
        self.organizations = list(organizations)
        self.extra_individuals = list(extra_individuals)
        self.failing_ids = dict(failing_ids or {})
        self.classifications = classifications if classifications is not None else {
            "individual": TARGET_ID,
            "business": BUSINESS_ID,
        }
        self.currency = currency
        self.lookup_calls = []
        self.mutation_calls = []
        self.fetches = 0
        self.connected = False

    def connect(self):
        self.connected = True

    def disconnect(self):
        self.connected = False

    def ensure_indexes(self):
        pass

    def stream_batches(self, source_filter, batch_size):
        selected = [
            org for org in sorted(self.organizations, key=lambda org: org.id)
            if org.classification_id != source_filter["exclude_classification_id"]
            and source_filter.get("classification_id") in (None, org.classification_id)
        ]
        for start in range(0, len(selected), batch_size):
            self.fetches += 1
            yield selected[start:start + batch_size]

    def find_reports_to(self, target_ids):
        self.lookup_calls.append(set(target_ids))
        individuals = [ind for org in self.organizations for ind in org.individuals] + self.extra_individuals
        return [(ind.id, ind.reports_to_id) for ind in individuals if ind.reports_to_id in target_ids]

    def apply_classification(self, requests):
        self.mutation_calls.append(list(requests))
        by_id = {org.id: org for org in self.organizations}
        outcomes = []
        for request in requests:
            if request.organization_id in self.failing_ids:
                outcomes.append(MutationOutcome(request.organization_id, False,
                                                self.failing_ids[request.organization_id]))
                continue
            by_id[request.organization_id].classification_id = request.classification_id
            outcomes.append(MutationOutcome(request.organization_id, True))
        return outcomes

    def resolve_classification_id(self, name):
        return self.classifications.get(name)

    def supports_currency(self):
        return self.currency


