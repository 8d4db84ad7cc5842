"""
STIDA - Record Editing Helpers
Copy-on-write edits for caller-owned domains and actions. Every helper returns
a new list; records it touches are rebuilt, the rest are shared.
"""
from engines.maturity import MAX_KPIS_PER_DOMAIN

KPI_FIELDS = ('name', 'value', 'weight', 'dqi')
ACTION_FIELDS = ('name', 'domainId', 'cost_upfront', 'cost_annual', 'effectiveness',
                 'isFloorFix', 'resourceMonths')

NEW_KPI = {'name': 'New KPI', 'value': 50, 'weight': 0.1, 'dqi': 0.5}


def _check_fields(fields, allowed, kind):
    unknown = [f for f in fields if f not in allowed]
    if unknown:
        raise KeyError(f"unknown {kind} field(s): {', '.join(unknown)}")


def _edit_domain(domains, domain_id, fn):
    return [fn(d) if d['id'] == domain_id else d for d in domains]


def update_kpi(domains, domain_id, index, **fields):
    _check_fields(fields, KPI_FIELDS, 'KPI')

    def apply(d):
        kpis = list(d['kpis'])
        kpis[index] = {**kpis[index], **fields}
        return {**d, 'kpis': kpis}
    return _edit_domain(domains, domain_id, apply)


def add_kpi(domains, domain_id, kpi=None):
    new_kpi = dict(kpi if kpi is not None else NEW_KPI)
    _check_fields(new_kpi, KPI_FIELDS, 'KPI')

    def apply(d):
        if len(d['kpis']) >= MAX_KPIS_PER_DOMAIN:
            return d
        return {**d, 'kpis': list(d['kpis']) + [new_kpi]}
    return _edit_domain(domains, domain_id, apply)


def remove_kpi(domains, domain_id, index):
    def apply(d):
        if not 0 <= index < len(d['kpis']):
            return d
        kpis = list(d['kpis'])
        del kpis[index]
        return {**d, 'kpis': kpis}
    return _edit_domain(domains, domain_id, apply)


def set_coverage(domains, domain_id, coverage):
    clamped = min(max(coverage, 0), 1)
    return _edit_domain(domains, domain_id, lambda d: {**d, 'coverage': clamped})


def update_action(actions, action_id, **fields):
    _check_fields(fields, ACTION_FIELDS, 'action')
    return [{**a, **fields} if a['id'] == action_id else a for a in actions]
