"""Spreadsheet export of the trial balance."""

import io

import pandas as pd

from ledger_app.reporting.ledger import TrialBalance

TRIAL_BALANCE_COLUMNS = [
    "Account Code",
    "Account Name",
    "Account Type",
    "Normal Balance",
    "Opening Balance",
    "Debit",
    "Credit",
    "Closing Balance",
    "Base Debit",
    "Base Credit",
    "Base Closing Balance",
]


def trial_balance_to_excel(report: TrialBalance) -> io.BytesIO:
    """
    Render a trial balance as an .xlsx workbook held in memory.

    One row per account, followed by a totals row.
    """
    rows = []
    for balance in report.balances:
        account = balance.account
        rows.append({
            "Account Code": account.code,
            "Account Name": account.name,
            "Account Type": account.account_type.name,
            "Normal Balance": account.account_type.normal_balance,
            "Opening Balance": float(balance.opening_balance),
            "Debit": float(balance.debit_amount),
            "Credit": float(balance.credit_amount),
            "Closing Balance": float(balance.closing_balance),
            "Base Debit": float(balance.base_debit_amount),
            "Base Credit": float(balance.base_credit_amount),
            "Base Closing Balance": float(balance.base_closing_balance),
        })

    rows.append({
        "Account Code": "",
        "Account Name": "Total",
        "Debit": float(report.total_debit),
        "Credit": float(report.total_credit),
        "Base Debit": float(report.total_base_debit),
        "Base Credit": float(report.total_base_credit),
    })

    df = pd.DataFrame(rows, columns=TRIAL_BALANCE_COLUMNS)

    buffer = io.BytesIO()
    df.to_excel(buffer, index=False, sheet_name="Trial Balance")
    buffer.seek(0)
    return buffer
