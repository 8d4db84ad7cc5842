"""
STIDA - Portfolio Allocation Engine
Two-phase greedy allocation under a Year-1 budget cap.

  Phase 1 (mandatory): actions in floor-violating domains, or flagged as floor
    fixes, funded in catalog order while they fit; misfits are skipped.
  Phase 2 (optimized): re-valuate every remaining action against the funded
    set, fund the best NBD, repeat. Stops at the first top candidate that
    does not fit the remaining budget.

Each funded action keeps the valuation it had when it was funded.
"""
import logging
from engines.maturity import floor_violations
from engines.valuation import valuate_action

REASON_MANDATORY = 'MANDATORY (Floor < 0.50)'
REASON_OPTIMIZED = 'Optimized (Best NBD)'

BUDGET_SCENARIOS = {
    'conservative': 0.75,
    'base': 1.00,
    'stretch': 1.25,
}


def build_portfolio(actions, scenarios, domain_scores, budget):
    spent = 0  # cumulative Year-1 cost
    total_upfront = 0
    total_annual = 0

    selected = []
    available = list(actions)

    # ── Phase 1: Mandatory floor fixes ──
    violations = floor_violations(domain_scores)
    floor_actions = [a for a in available if a['domainId'] in violations or a['isFloorFix']]

    for action in floor_actions:
        y1_cost = action['cost_upfront'] + action['cost_annual']
        if spent + y1_cost <= budget:
            metrics = valuate_action(action, scenarios, selected)
            metrics['reason'] = REASON_MANDATORY
            selected.append(metrics)
            spent += y1_cost
            total_upfront += action['cost_upfront']
            total_annual += action['cost_annual']
            available = [a for a in available if a['id'] != action['id']]
        else:
            logging.info(f"build_portfolio: mandatory {action['id']} skipped "
                         f"(Y1 ${y1_cost:,.0f} exceeds remaining ${budget - spent:,.0f})")

    # ── Phase 2: Optimize remaining (full recompute each round) ──
    halted = None
    while available:
        candidates = [valuate_action(a, scenarios, selected) for a in available]
        candidates.sort(key=lambda c: c['nbd'], reverse=True)
        best = candidates[0]

        if spent + best['year1Cost'] > budget:
            halted = best['id']
            logging.info(f"build_portfolio: halted at {best['id']} "
                         f"(NBD {best['nbd']:.3f}, Y1 ${best['year1Cost']:,.0f} > remaining ${budget - spent:,.0f})")
            break

        best['reason'] = REASON_OPTIMIZED
        selected.append(best)
        spent += best['year1Cost']
        total_upfront += best['cost_upfront']
        total_annual += best['cost_annual']
        available = [a for a in available if a['id'] != best['id']]

    return {
        'selectedActions': selected,
        'totalYear1Cost': spent,
        'totalUpfront': total_upfront,
        'totalAnnual': total_annual,
        'totalNPV': sum(a['npv'] for a in selected),
        'totalDeltaALE': sum(a['totalDeltaALE'] for a in selected),
        'budget': budget,
        'remainingBudget': budget - spent,
        'floorViolations': violations,
        'halted': halted,
    }


def budget_scenarios(actions, scenarios, domain_scores, budget):
    """Re-run the allocation at scaled budgets for side-by-side comparison."""
    results = {}
    for label, mult in BUDGET_SCENARIOS.items():
        sc_budget = budget * mult
        pf = build_portfolio(actions, scenarios, domain_scores, sc_budget)
        results[label] = {
            'label': label.capitalize(),
            'budget': sc_budget,
            'selected': [a['id'] for a in pf['selectedActions']],
            'totalYear1Cost': pf['totalYear1Cost'],
            'totalNPV': round(pf['totalNPV']),
            'totalDeltaALE': round(pf['totalDeltaALE']),
        }
    return results
