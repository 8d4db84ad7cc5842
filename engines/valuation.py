"""
STIDA - Action Valuation Engine
Scenario-mapped ALE reduction with safety caps, correlation-penalty dampening
against already-funded actions, and 3-year discounted financials.

Results depend on the funded set, so every call is a fresh valuation.
"""

DISCOUNT_RATE = 0.10
HORIZON_YEARS = 3
# Σ 1/(1+DISCOUNT_RATE)^t for t=1..HORIZON_YEARS: 0.909 + 0.826 + 0.751
PV_FACTOR_SUM = 2.486

# ── Correlation heuristic ──
RHO_SAME_DOMAIN = 0.4
RHO_CROSS_DOMAIN = 0.15
PENALTY_SCALE = 0.2
MAX_PENALTY = 0.8

MAX_PROBABILITY_DELTA = 1.0
PAYBACK_NEVER = 999

EFFECT_TYPES = ('PROBABILITY', 'IMPACT')


def scenario_reduction(effect, scenario):
    """Raw annual loss reduction of one effect on one scenario, before dampening."""
    if effect['type'] == 'PROBABILITY':
        # ΔALE = SLE × freq × ΔP
        capped = min(effect['amount'], MAX_PROBABILITY_DELTA)
        return scenario['sle'] * scenario['frequency'] * capped
    if effect['type'] == 'IMPACT':
        # ΔALE = ΔSLE × freq
        capped = min(effect['amount'], scenario['sle'])
        return capped * scenario['frequency']
    return 0


def correlation_penalty(action, scenario_id, funded_actions):
    """Dampening factor in [0, MAX_PENALTY] from funded actions hitting the same scenario."""
    penalty_sum = 0
    for funded in funded_actions:
        if funded['effectiveness'].get(scenario_id):
            rho = RHO_SAME_DOMAIN if funded['domainId'] == action['domainId'] else RHO_CROSS_DOMAIN
            penalty_sum += rho
    return min(penalty_sum * PENALTY_SCALE, MAX_PENALTY)


def valuate_action(action, scenarios, funded_actions):
    """Return a new CalculatedAction record for ``action`` given the current funded set."""
    total_delta_ale = 0
    breakdown = []

    for scen in scenarios:
        eff = action['effectiveness'].get(scen['id'])
        if not eff:
            continue
        raw_reduction = scenario_reduction(eff, scen)
        penalty_factor = correlation_penalty(action, scen['id'], funded_actions)
        effective_reduction = raw_reduction * (1 - penalty_factor)
        total_delta_ale += effective_reduction
        breakdown.append({
            'scenarioId': scen['id'],
            'rawReduction': raw_reduction,
            'penaltyFactor': penalty_factor,
            'effectiveReduction': effective_reduction,
        })

    # ── Financials ──
    upfront = action['cost_upfront']
    annual = action['cost_annual']
    pv_benefits = total_delta_ale * PV_FACTOR_SUM
    pv_costs = upfront + annual * PV_FACTOR_SUM
    year1_cost = upfront + annual

    npv = pv_benefits - pv_costs
    roi = (pv_benefits - pv_costs) / pv_costs if pv_costs > 0 else 0
    bcr = pv_benefits / pv_costs if pv_costs > 0 else 0
    # Net benefit per Year-1 dollar: the allocator's ranking key
    nbd = total_delta_ale / year1_cost if year1_cost > 0 else 0

    net_annual_benefit = total_delta_ale - annual
    payback_months = (upfront / net_annual_benefit) * 12 if net_annual_benefit > 0 else PAYBACK_NEVER

    calculated = dict(action)
    calculated.update({
        'nbd': nbd,
        'paybackMonths': payback_months,
        'npv': npv,
        'roi': roi,
        'bcr': bcr,
        'totalDeltaALE': total_delta_ale,
        'year1Cost': year1_cost,
        'scenarioBreakdown': breakdown,
    })
    return calculated
