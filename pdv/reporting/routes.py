"""
pdv/reporting/routes.py
-----------------------
Cash register report: JSON and CSV export.
"""
import csv
import io
from datetime import date, datetime, timedelta
from decimal import Decimal

from flask import request, jsonify, Response, stream_with_context, current_app

from pdv.auth.decorators import admin_required
from pdv.reporting import reporting
from pdv.reporting.cash import cash_register_report


# ── Helpers ───────────────────────────────────────────────────────

def _get_filters():
    """Parse start/end dates, operator, status and store from query params."""
    today = date.today()
    start_str = request.args.get('start_date')
    end_str   = request.args.get('end_date')

    if start_str:
        start_date = date.fromisoformat(start_str)
    else:
        start_date = today - timedelta(days=current_app.config['CASH_REPORT_DEFAULT_DAYS'])

    end_date = date.fromisoformat(end_str) if end_str else today

    return {
        'start_date':  start_date,
        'end_date':    end_date,
        'store':       request.args.get('store') or None,
        'operator_id': request.args.get('operator_id', type=int),
        'status':      request.args.get('status', 'all'),
    }


def _jsonable(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


# ── Cash registers ────────────────────────────────────────────────

@reporting.route('/cash-registers')
@admin_required
def cash_registers():
    try:
        report = cash_register_report(**_get_filters())
    except ValueError as exc:
        return jsonify({'error': str(exc), 'code': 'bad_request'}), 400
    return jsonify(_jsonable(report))


@reporting.route('/export/cash-registers')
@admin_required
def export_cash_registers():
    try:
        filters = _get_filters()
        report  = cash_register_report(**filters)
    except ValueError as exc:
        return jsonify({'error': str(exc), 'code': 'bad_request'}), 400

    def generate():
        data = io.StringIO()
        w = csv.writer(data)

        w.writerow(['Register', 'Store', 'Operator', 'Opened', 'Closed', 'Opening',
                    'Sales', 'Sales Total', 'Cash Sales', 'Expected', 'Closing', 'Difference'])
        yield data.getvalue()
        data.seek(0)
        data.truncate(0)

        for r in report['registers']:
            s = r['summary']
            w.writerow([
                r['id'],
                r['store'],
                r['operator_name'] or '',
                r['opened_at'].strftime('%Y-%m-%d %H:%M'),
                r['closed_at'].strftime('%Y-%m-%d %H:%M') if r['closed_at'] else '',
                r['opening_amount'],
                s['sales_count'],
                s['sales_total'],
                s['cash_sales_total'],
                s['expected_balance'],
                r['closing_amount'] if r['closing_amount'] is not None else '',
                r['difference'] if r['difference'] is not None else '',
            ])
            yield data.getvalue()
            data.seek(0)
            data.truncate(0)

        t = report['totals']
        w.writerow([
            'TOTAL', '', '', '', '',
            t['opening_amount'],
            t['sales_count'],
            t['sales_total'],
            t['cash_sales_total'],
            t['expected_balance'],
            '',
            t['difference'],
        ])
        yield data.getvalue()

    filename = f"cash_registers_{filters['start_date']}_{filters['end_date']}.csv"
    headers = {
        'Content-Disposition': f'attachment; filename={filename}',
        'Content-Type': 'text/csv'
    }
    return Response(stream_with_context(generate()), headers=headers)
