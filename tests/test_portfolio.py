import pytest

from engines.catalog import load_default_catalog
from engines.maturity import compute_domain_scores
from engines.portfolio import REASON_MANDATORY, REASON_OPTIMIZED, budget_scenarios, build_portfolio


@pytest.fixture
def catalog():
    cat = load_default_catalog()
    cat['domainScores'] = compute_domain_scores(cat['domains'])
    return cat


def _run(cat, budget):
    return build_portfolio(cat['actions'], cat['scenarios'], cat['domainScores'], budget)


def _healthy_scores(*ids):
    return [{'id': d, 'name': d, 'coverage': 1.0, 'kpis': [], 'rawScore': 100, 'sStar': 1.0, 'meetsFloor': True}
            for d in ids]


def _action(aid, domain, upfront, amount, scenario='S1', floor_fix=False):
    return {'id': aid, 'name': aid, 'domainId': domain, 'cost_upfront': upfront, 'cost_annual': 0,
            'effectiveness': {scenario: {'type': 'PROBABILITY', 'amount': amount}},
            'isFloorFix': floor_fix, 'resourceMonths': 1}


SCENARIOS = [{'id': 'S1', 'name': 'One', 'sle': 1000, 'frequency': 1.0},
             {'id': 'S2', 'name': 'Two', 'sle': 1000, 'frequency': 1.0}]


def test_default_budget_funds_mandatory_then_halts(catalog):
    pf = _run(catalog, 1000000)
    assert [a['id'] for a in pf['selectedActions']] == ['A1', 'A2']
    assert all(a['reason'] == REASON_MANDATORY for a in pf['selectedActions'])
    assert pf['totalYear1Cost'] == 825000
    assert pf['totalUpfront'] == 720000
    assert pf['totalAnnual'] == 105000
    assert pf['remainingBudget'] == 175000
    assert pf['floorViolations'] == ['G3', 'G4', 'G5']
    # A4 (Y1 190k) skipped in phase 1, then ranks first in phase 2 and does not fit
    assert pf['halted'] == 'A4'


def test_floor_fix_funded_first(catalog):
    pf = _run(catalog, 135000)
    assert [a['id'] for a in pf['selectedActions']] == ['A1']
    a1 = pf['selectedActions'][0]
    assert a1['reason'] == REASON_MANDATORY
    assert a1['totalDeltaALE'] == pytest.approx(180000)


def test_zero_budget(catalog):
    pf = _run(catalog, 0)
    assert pf['selectedActions'] == []
    assert pf['totalYear1Cost'] == 0
    assert pf['totalNPV'] == 0


def test_metrics_frozen_at_funding_time(catalog):
    pf = _run(catalog, 1000000)
    a2 = pf['selectedActions'][1]
    # valued against {A1}, which does not touch S2/S3
    assert a2['totalDeltaALE'] == pytest.approx(4500000 * 0.15 * 0.35 + 500000 * 0.10 * 0.25)
    assert a2['nbd'] == pytest.approx(248750 / 690000)


def test_large_budget_funds_everything(catalog):
    pf = _run(catalog, 10 ** 8)
    ids = [a['id'] for a in pf['selectedActions']]
    assert ids[:3] == ['A1', 'A2', 'A4']
    assert sorted(ids) == ['A1', 'A2', 'A3', 'A4', 'A5', 'A6']
    assert [a['reason'] for a in pf['selectedActions'][3:]] == [REASON_OPTIMIZED] * 3
    assert pf['halted'] is None
    assert pf['totalYear1Cost'] == sum(a['year1Cost'] for a in pf['selectedActions'])


def test_mandatory_phase_never_exceeds_budget(catalog):
    for budget in (0, 100000, 135000, 500000, 825000, 900000):
        pf = _run(catalog, budget)
        running = 0
        for a in pf['selectedActions']:
            running += a['year1Cost']
            assert running <= budget


def test_floor_candidates_include_violating_domains_without_flag():
    actions = [_action('V', 'BAD', 100, 0.01), _action('G', 'OK', 100, 0.9)]
    scores = _healthy_scores('OK') + [{'id': 'BAD', 'meetsFloor': False}]
    pf = build_portfolio(actions, SCENARIOS, scores, 100)
    assert [a['id'] for a in pf['selectedActions']] == ['V']
    assert pf['selectedActions'][0]['reason'] == REASON_MANDATORY


def test_optimization_ranks_by_nbd():
    actions = [_action('LOW', 'D1', 100, 0.1), _action('HIGH', 'D2', 100, 0.5, scenario='S2')]
    pf = build_portfolio(actions, SCENARIOS, _healthy_scores('D1', 'D2'), 1000)
    assert [a['id'] for a in pf['selectedActions']] == ['HIGH', 'LOW']
    assert all(a['reason'] == REASON_OPTIMIZED for a in pf['selectedActions'])


def test_early_halt_skips_cheaper_candidates():
    # BIG ranks first but does not fit; CHEAP would fit but is never considered
    actions = [_action('CHEAP', 'D1', 100, 0.05), _action('BIG', 'D2', 500, 0.9, scenario='S2')]
    pf = build_portfolio(actions, SCENARIOS, _healthy_scores('D1', 'D2'), 300)
    assert pf['selectedActions'] == []
    assert pf['halted'] == 'BIG'


def test_recompute_applies_correlation_between_rounds():
    # A and B both hit S1 in the same domain; C hits S2 alone
    actions = [_action('A', 'D1', 100, 0.50),
               _action('B', 'D1', 100, 0.45),
               _action('C', 'D2', 100, 0.42, scenario='S2')]
    pf = build_portfolio(actions, SCENARIOS, _healthy_scores('D1', 'D2'), 1000)
    # Standalone B (450) beats C (420), but once A is funded B drops to 414
    assert [a['id'] for a in pf['selectedActions']] == ['A', 'C', 'B']
    assert pf['selectedActions'][2]['totalDeltaALE'] == pytest.approx(450 * 0.92)


def test_ties_keep_catalog_order():
    actions = [_action('FIRST', 'D1', 100, 0.3), _action('SECOND', 'D2', 100, 0.3, scenario='S2')]
    pf = build_portfolio(actions, SCENARIOS, _healthy_scores('D1', 'D2'), 100)
    assert [a['id'] for a in pf['selectedActions']] == ['FIRST']


def test_empty_catalog():
    pf = build_portfolio([], SCENARIOS, [], 1000)
    assert pf['selectedActions'] == []
    assert pf['halted'] is None


def test_inputs_not_mutated(catalog):
    before = load_default_catalog()['actions']
    _run(catalog, 10 ** 8)
    assert catalog['actions'] == before


def test_budget_scenarios(catalog):
    results = budget_scenarios(catalog['actions'], catalog['scenarios'], catalog['domainScores'], 1000000)
    assert list(results) == ['conservative', 'base', 'stretch']
    assert results['base']['selected'] == ['A1', 'A2']
    assert results['conservative']['budget'] == 750000
    # A2 no longer fits, so A4 takes its mandatory slot
    assert results['conservative']['selected'] == ['A1', 'A4']
    assert results['stretch']['totalYear1Cost'] <= 1250000


@pytest.mark.parametrize('budget', [0, 135000, 1000000, 2500000, 10 ** 8])
def test_selection_bounded_by_action_pool(catalog, budget):
    pf = _run(catalog, budget)
    ids = [a['id'] for a in pf['selectedActions']]
    assert len(ids) <= len(catalog['actions'])
    assert len(ids) == len(set(ids))
    assert pf['totalYear1Cost'] <= budget
