"""
Conta corrente de clientes e fornecedores.
"""
from typing import List, Optional
from dataclasses import replace
from datetime import date

from .records import Account, AccountTransaction, Invoice, InvoiceType, TransactionKind
from .document_totals import to_local_currency


def account_balance(account: Account) -> float:
    """
    Saldo recalculado a partir dos lançamentos.
    Fórmula: saldo inicial + Σ débitos - Σ créditos
    """
    debits = sum(t.amount for t in account.transactions if t.kind == TransactionKind.DEBIT)
    credits = sum(t.amount for t in account.transactions if t.kind == TransactionKind.CREDIT)
    return account.initial_balance + debits - credits


def post_transaction(
    account: Account,
    kind: TransactionKind,
    amount: float,
    document_ref: str = "",
    on: Optional[date] = None,
    description: str = ""
) -> Account:
    """Nova conta com o lançamento acrescentado e o saldo actualizado."""
    entry = AccountTransaction(
        date=on or date.today(),
        kind=kind,
        amount=amount,
        document_ref=document_ref,
        description=description
    )
    updated = replace(account, transactions=account.transactions + [entry])
    return replace(updated, account_balance=account_balance(updated))


def postings_for_invoice(invoice: Invoice) -> List[AccountTransaction]:
    """
    Lançamentos na conta do cliente gerados por um documento certificado.
    FT, VD e ND debitam; NC e RG creditam; FR debita e credita (pagamento imediato).
    """
    amount = to_local_currency(invoice.total, invoice.currency, invoice.exchange_rate)
    issued = f"Emissão {invoice.type.value}"

    def entry(kind: TransactionKind, description: str) -> AccountTransaction:
        return AccountTransaction(
            date=invoice.date,
            kind=kind,
            amount=amount,
            document_ref=invoice.number,
            description=description
        )

    if invoice.type in (InvoiceType.FT, InvoiceType.VD, InvoiceType.ND):
        return [entry(TransactionKind.DEBIT, issued)]
    if invoice.type in (InvoiceType.NC, InvoiceType.RG):
        return [entry(TransactionKind.CREDIT, issued)]
    if invoice.type == InvoiceType.FR:
        return [
            entry(TransactionKind.DEBIT, issued),
            entry(TransactionKind.CREDIT, f"Pagamento Imediato {invoice.type.value}"),
        ]
    return []


def post_invoice(account: Account, invoice: Invoice) -> Account:
    for t in postings_for_invoice(invoice):
        account = post_transaction(account, t.kind, t.amount, t.document_ref, t.date, t.description)
    return account
