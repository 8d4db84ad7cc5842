"""
STIDA Calculator - Flask API Server
Holds one input snapshot (domains, scenarios, actions, budget) and re-derives
domain scores and the funded portfolio from scratch after every mutation.
"""
import logging
import math
import os
import traceback
from flask import Flask, jsonify, request, send_file
from engines.catalog import load_default_catalog, DEFAULT_BUDGET, TIERS
from engines.maturity import compute_domain_scores, kpi_weight_check, FLOOR_THRESHOLD
from engines.valuation import valuate_action
from engines.portfolio import build_portfolio, budget_scenarios
from engines.editing import (update_kpi, add_kpi, remove_kpi, set_coverage,
                             update_action, KPI_FIELDS, ACTION_FIELDS)

app = Flask(__name__)

STATE = {
    'domains': None, 'scenarios': None, 'actions': None,
    'budget': None, 'tier': 'TIER_1',
    'domainScores': None, 'portfolio': None, 'loaded': False,
}

NUMERIC_KPI_FIELDS = ('value', 'weight', 'dqi')
NUMERIC_ACTION_FIELDS = ('cost_upfront', 'cost_annual', 'resourceMonths')


class InputError(ValueError):
    pass


def _reset_state():
    """Seed the snapshot from the default catalog, dropping every edit."""
    catalog = load_default_catalog()
    STATE['domains'] = catalog['domains']
    STATE['scenarios'] = catalog['scenarios']
    STATE['actions'] = catalog['actions']
    STATE['budget'] = float(os.environ.get('STIDA_BUDGET', DEFAULT_BUDGET))
    STATE['tier'] = 'TIER_1'
    _recompute()
    STATE['loaded'] = True


def _recompute():
    """Full re-derivation: domain scoring → portfolio allocation."""
    STATE['domainScores'] = compute_domain_scores(STATE['domains'])
    STATE['portfolio'] = build_portfolio(STATE['actions'], STATE['scenarios'],
                                         STATE['domainScores'], STATE['budget'])


@app.before_request
def _ensure_loaded():
    if not STATE['loaded']:
        _reset_state()
        print("[OK] STIDA engines loaded successfully")


def _build_dashboard_object():
    scores = STATE['domainScores']; pf = STATE['portfolio']; budget = STATE['budget']
    return {
        # Domains
        'domainScores': scores,
        'floorViolations': pf['floorViolations'],
        'floorThreshold': FLOOR_THRESHOLD,
        'weightChecks': kpi_weight_check(STATE['domains']),
        'domainChart': [{'name': d['id'], 'Score': d['sStar'], 'Floor': FLOOR_THRESHOLD} for d in scores],
        # Portfolio
        'portfolio': pf,
        'portfolioChart': [{'name': f"A{i+1}", 'cost': a['year1Cost'], 'benefit': a['totalDeltaALE'], 'nbd': a['nbd']}
                           for i, a in enumerate(pf['selectedActions'])],
        'budgetScenarios': budget_scenarios(STATE['actions'], STATE['scenarios'], scores, budget),
        # Meta
        'scenarios': STATE['scenarios'],
        'budget': budget,
        'budgetUtilization': round(pf['totalYear1Cost'] / budget * 100, 1) if budget > 0 else 0,
        'tier': STATE['tier'],
        'tierLabel': TIERS[STATE['tier']]['label'],
    }


def _body():
    body = request.get_json(force=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise InputError('JSON object body required')
    return body


def _to_float(value, field):
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InputError(f'{field} must be numeric')
    if not math.isfinite(number):
        raise InputError(f'{field} must be finite')
    return number


def _find(records, rid):
    return next((r for r in records if r['id'] == rid), None)


def _coerce_fields(fields, numeric):
    out = dict(fields)
    for fk in numeric:
        if fk in out:
            out[fk] = _to_float(out[fk], fk)
    if 'isFloorFix' in out:
        if not isinstance(out['isFloorFix'], bool):
            raise InputError('isFloorFix must be a boolean')
    return out


def _mutation_response(**extra):
    payload = {'status': 'ok', 'data': _build_dashboard_object()}
    payload.update(extra)
    return jsonify(payload)


@app.errorhandler(InputError)
def _input_error(e):
    return jsonify({'error': str(e)}), 400


# ══════════════════════════════════════════════════════════════
#  ROUTES
# ══════════════════════════════════════════════════════════════

@app.route('/api/data')
def api_data():
    return jsonify(_build_dashboard_object())

@app.route('/api/domains')
def api_domains():
    return jsonify({'domainScores': STATE['domainScores'],
                    'floorViolations': STATE['portfolio']['floorViolations']})

@app.route('/api/portfolio')
def api_portfolio():
    return jsonify(STATE['portfolio'])


@app.route('/api/refresh', methods=['POST'])
def api_refresh():
    """Reset to the default catalog, discarding ALL edits."""
    _reset_state()
    return _mutation_response(message='Snapshot reset to default catalog')


@app.route('/api/budget', methods=['POST'])
def api_budget():
    body = _body()
    if body.get('budget') is None:
        return jsonify({'error': 'budget required'}), 400
    STATE['budget'] = _to_float(body['budget'], 'budget')
    _recompute()
    return _mutation_response()


@app.route('/api/tier', methods=['POST'])
def api_tier():
    tier = _body().get('tier')
    if tier not in TIERS:
        return jsonify({'error': f"tier must be one of {', '.join(TIERS)}"}), 400
    STATE['tier'] = tier
    return jsonify({'status': 'ok', 'tier': tier, 'tierLabel': TIERS[tier]['label']})


@app.route('/api/kpi/update', methods=['POST'])
def api_update_kpi():
    body = _body()
    domain_id = body.get('domainId'); index = body.get('index'); fields = body.get('fields', {})
    if not domain_id or index is None:
        return jsonify({'error': 'domainId and index required'}), 400
    domain = _find(STATE['domains'], domain_id)
    if domain is None:
        return jsonify({'error': f'unknown domain {domain_id}'}), 404
    unknown = [f for f in fields if f not in KPI_FIELDS]
    if unknown:
        return jsonify({'error': f"unknown KPI field(s): {', '.join(unknown)}"}), 400
    index = int(_to_float(index, 'index'))
    if not 0 <= index < len(domain['kpis']):
        return jsonify({'error': f'KPI index {index} out of range'}), 400

    STATE['domains'] = update_kpi(STATE['domains'], domain_id, index,
                                  **_coerce_fields(fields, NUMERIC_KPI_FIELDS))
    _recompute()
    return _mutation_response(message=f'KPI {index} of {domain_id} updated with {len(fields)} field(s)')


@app.route('/api/kpi/add', methods=['POST'])
def api_add_kpi():
    domain_id = _body().get('domainId')
    if not domain_id:
        return jsonify({'error': 'domainId required'}), 400
    if _find(STATE['domains'], domain_id) is None:
        return jsonify({'error': f'unknown domain {domain_id}'}), 404
    STATE['domains'] = add_kpi(STATE['domains'], domain_id)
    _recompute()
    return _mutation_response()


@app.route('/api/kpi/remove', methods=['POST'])
def api_remove_kpi():
    body = _body()
    domain_id = body.get('domainId'); index = body.get('index')
    if not domain_id or index is None:
        return jsonify({'error': 'domainId and index required'}), 400
    domain = _find(STATE['domains'], domain_id)
    if domain is None:
        return jsonify({'error': f'unknown domain {domain_id}'}), 404
    index = int(_to_float(index, 'index'))
    if not 0 <= index < len(domain['kpis']):
        return jsonify({'error': f'KPI index {index} out of range'}), 400
    STATE['domains'] = remove_kpi(STATE['domains'], domain_id, index)
    _recompute()
    return _mutation_response()


@app.route('/api/coverage', methods=['POST'])
def api_coverage():
    body = _body()
    domain_id = body.get('domainId'); coverage = body.get('coverage')
    if not domain_id or coverage is None:
        return jsonify({'error': 'domainId and coverage required'}), 400
    if _find(STATE['domains'], domain_id) is None:
        return jsonify({'error': f'unknown domain {domain_id}'}), 404
    STATE['domains'] = set_coverage(STATE['domains'], domain_id, _to_float(coverage, 'coverage'))
    _recompute()
    return _mutation_response()


@app.route('/api/action/update', methods=['POST'])
def api_update_action():
    body = _body()
    action_id = body.get('id'); fields = body.get('fields', {})
    if not action_id:
        return jsonify({'error': 'id required'}), 400
    if _find(STATE['actions'], action_id) is None:
        return jsonify({'error': f'unknown action {action_id}'}), 404
    unknown = [f for f in fields if f not in ACTION_FIELDS]
    if unknown:
        return jsonify({'error': f"unknown action field(s): {', '.join(unknown)}"}), 400

    previous = STATE['actions']
    STATE['actions'] = update_action(previous, action_id,
                                     **_coerce_fields(fields, NUMERIC_ACTION_FIELDS))
    try:
        _recompute()
    except Exception as e:
        # e.g. a malformed effectiveness mapping; roll back to the last good snapshot
        logging.warning(f"recompute failed after editing {action_id}: {type(e).__name__}: {e}")
        traceback.print_exc()
        STATE['actions'] = previous
        _recompute()
        return jsonify({'status': 'error', 'message': str(e)}), 500
    return _mutation_response(message=f'Action {action_id} updated with {len(fields)} field(s)')


@app.route('/api/export')
def api_export():
    """Export snapshot and portfolio to Excel."""
    try:
        import openpyxl
        from openpyxl.styles import Font, PatternFill, Alignment, Border, Side

        wb = openpyxl.Workbook()
        hf = Font(bold=True, color='FFFFFF', size=11)
        hfill = PatternFill(start_color='0F172A', end_color='0F172A', fill_type='solid')
        tb = Border(left=Side(style='thin'),right=Side(style='thin'),
                    top=Side(style='thin'),bottom=Side(style='thin'))

        def ws_write(ws, headers, rows):
            for c, h in enumerate(headers, 1):
                cell = ws.cell(row=1, column=c, value=h)
                cell.font=hf; cell.fill=hfill; cell.alignment=Alignment(horizontal='center'); cell.border=tb
            for r, row in enumerate(rows, 2):
                for c, val in enumerate(row, 1):
                    cell = ws.cell(row=r, column=c, value=val); cell.border=tb
            for col in ws.columns:
                ml = max(len(str(cell.value or '')) for cell in col)
                ws.column_dimensions[col[0].column_letter].width = min(ml+2, 40)

        pf = STATE['portfolio']; scores = STATE['domainScores']; budget = STATE['budget']

        # 1. Summary
        ws=wb.active; ws.title='Summary'
        ws_write(ws, ['Metric','Value'], [
            ['Tier', TIERS[STATE['tier']]['label']],
            ['Year 1 Budget', f"${budget:,.0f}"],
            ['Year 1 Cost', f"${pf['totalYear1Cost']:,.0f}"],
            ['Remaining Budget', f"${pf['remainingBudget']:,.0f}"],
            ['Total Upfront', f"${pf['totalUpfront']:,.0f}"],
            ['Total Annual', f"${pf['totalAnnual']:,.0f}"],
            ['Portfolio NPV', f"${pf['totalNPV']:,.0f}"],
            ['Annual Risk Reduction (ΔALE)', f"${pf['totalDeltaALE']:,.0f}"],
            ['Floor Violations', ', '.join(pf['floorViolations']) or 'None'],
        ])

        # 2. Domains
        ws2=wb.create_sheet('Domains')
        ws_write(ws2, ['ID','Domain','Coverage','Raw Score','S*','Meets Floor'], [
            [d['id'],d['name'],f"{d['coverage']:.0%}",f"{d['rawScore']:.1f}",f"{d['sStar']:.3f}",
             'Yes' if d['meetsFloor'] else 'No']
            for d in scores
        ])

        # 3. KPIs
        ws3=wb.create_sheet('KPIs')
        ws_write(ws3, ['Domain','KPI','Value','Weight','DQI'], [
            [d['id'],k['name'],k['value'],k['weight'],k['dqi']]
            for d in STATE['domains'] for k in d['kpis']
        ])

        # 4. Scenarios
        ws4=wb.create_sheet('Scenarios')
        ws_write(ws4, ['ID','Scenario','SLE','Frequency','ALE'], [
            [s['id'],s['name'],f"${s['sle']:,.0f}",f"{s['frequency']:.2f}",f"${s['sle']*s['frequency']:,.0f}"]
            for s in STATE['scenarios']
        ])

        # 5. Portfolio (frozen at funding time)
        ws5=wb.create_sheet('Portfolio')
        ws_write(ws5, ['#','ID','Action','Domain','Reason','Y1 Cost','ΔALE','NBD','NPV','ROI','BCR','Payback (mo)'], [
            [i+1,a['id'],a['name'],a['domainId'],a['reason'],f"${a['year1Cost']:,.0f}",
             f"${a['totalDeltaALE']:,.0f}",f"{a['nbd']:.2f}",f"${a['npv']:,.0f}",f"{a['roi']:.1%}",
             f"{a['bcr']:.2f}",f"{a['paybackMonths']:.1f}"]
            for i, a in enumerate(pf['selectedActions'])
        ])

        # 6. Candidates (standalone, no funded overlap)
        ws6=wb.create_sheet('Candidates')
        funded_ids = {a['id'] for a in pf['selectedActions']}
        ws_write(ws6, ['ID','Action','Domain','Floor Fix','Resource Months','Y1 Cost','ΔALE','NBD','NPV','Funded'], [
            [c['id'],c['name'],c['domainId'],'Yes' if c['isFloorFix'] else 'No',c['resourceMonths'],
             f"${c['year1Cost']:,.0f}",f"${c['totalDeltaALE']:,.0f}",f"{c['nbd']:.2f}",f"${c['npv']:,.0f}",
             'Yes' if c['id'] in funded_ids else 'No']
            for c in (valuate_action(a, STATE['scenarios'], []) for a in STATE['actions'])
        ])

        export_dir = os.environ.get('STIDA_EXPORT_DIR', os.path.join(os.path.dirname(__file__), 'data'))
        export_path = os.path.join(export_dir, 'export.xlsx')
        os.makedirs(export_dir, exist_ok=True)
        wb.save(export_path)
        return send_file(export_path, as_attachment=True, download_name='STIDA_Export.xlsx')

    except Exception as e:
        traceback.print_exc()
        return jsonify({'error':str(e)}), 500


if __name__ == '__main__':
    app.run(debug=False, host='0.0.0.0', port=int(os.environ.get('PORT', 5000)))
