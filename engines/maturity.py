"""
STIDA - Domain Maturity & Effectiveness Engine
DQI-weighted KPI maturity, coverage-scaled effectiveness (S*) and floor check.
"""

FLOOR_THRESHOLD = 0.50
MAX_KPIS_PER_DOMAIN = 6
WEIGHT_TOLERANCE = 0.01


def compute_domain_scores(domains):
    """Score every domain, preserving input order.

    rawScore = Σ(value × weight × dqi) / Σ(weight × dqi), or 0 when the
    adjusted weights sum to 0. sStar = (rawScore / 100) × coverage.
    Inputs are not range-checked; out-of-range numbers flow straight through.
    """
    return [_score_domain(d) for d in domains]


def _score_domain(domain):
    kpis = domain.get('kpis', [])
    total_adjusted_weight = sum(k['weight'] * k['dqi'] for k in kpis)
    if total_adjusted_weight > 0:
        raw_score = sum(k['value'] * k['weight'] * k['dqi'] for k in kpis) / total_adjusted_weight
    else:
        raw_score = 0

    maturity = raw_score / 100
    s_star = maturity * domain['coverage']

    scored = dict(domain)
    scored['kpis'] = [dict(k) for k in kpis]
    scored['rawScore'] = raw_score
    scored['sStar'] = s_star
    scored['meetsFloor'] = s_star >= FLOOR_THRESHOLD
    return scored


def floor_violations(domain_scores):
    return [d['id'] for d in domain_scores if not d['meetsFloor']]


def kpi_weight_check(domains):
    """Flag domains whose nominal KPI weights do not sum to 1.0 (scoring is unaffected)."""
    checks = []
    for d in domains:
        total = sum(k['weight'] for k in d.get('kpis', []))
        checks.append({
            'id': d['id'], 'name': d.get('name', ''),
            'weightTotal': round(total, 4),
            'weightWarning': abs(total - 1.0) > WEIGHT_TOLERANCE,
            'kpiCount': len(d.get('kpis', [])),
            'atKpiLimit': len(d.get('kpis', [])) >= MAX_KPIS_PER_DOMAIN,
        })
    return checks
