from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status

from limitguard.core.config import Settings
from limitguard.db.dal import Database
from limitguard.models import ExceededTransactionOut, TransactionIn, TransactionOut
from limitguard.services.alerts import collect_exceeded_transactions
from limitguard.services.evaluator import LimitEvaluator
from limitguard.services.timeline import parse_instant

router = APIRouter(prefix="/api/transactions", tags=["transactions"])

# Dependencies -----------------------------------------------------


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_evaluator(request: Request) -> LimitEvaluator:
    return request.app.state.evaluator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


# Helpers ----------------------------------------------------------


def _row_to_transaction_out(row: dict) -> TransactionOut:
    return TransactionOut(
        id=row["id"],
        account_from=row["account_from"],
        account_to=row["account_to"],
        currency_shortname=row["currency_shortname"],
        amount=Decimal(row["amount"]),
        expense_category=row["expense_category"],
        occurred_at=parse_instant(row["occurred_at"]),
        usd_amount=Decimal(row["usd_amount"]),
        limit_id=row.get("limit_id"),
        limit_sum=Decimal(row["limit_sum"]),
        limit_exceeded=bool(row["limit_exceeded"]),
        created_at=parse_instant(row["created_at"]),
    )


# Routes -----------------------------------------------------------
# Blocking handlers (sqlite, rate fetch) are plain defs so they run in the threadpool.
@router.post(
    "",
    response_model=TransactionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Submit an expense and evaluate it against the category limit",
)
def create_transaction(
    payload: TransactionIn,
    db: Database = Depends(get_db),
    evaluator: LimitEvaluator = Depends(get_evaluator),
):
    # Rate, limit and spend failures surface through the domain error handlers
    verdict = evaluator.evaluate(payload)

    row = db.get_transaction(verdict.transaction_id)
    if not row:
        raise HTTPException(status_code=500, detail="transaction not found after insert")
    return _row_to_transaction_out(row)


@router.get(
    "/exceeded",
    response_model=List[ExceededTransactionOut],
    summary="List transactions that exceeded their limit",
)
def list_exceeded(
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    return collect_exceeded_transactions(db, settings.reference_currency)


@router.get(
    "/{transaction_id}", response_model=TransactionOut, summary="Get one transaction"
)
def get_transaction(transaction_id: int, db: Database = Depends(get_db)):
    row = db.get_transaction(transaction_id)
    if not row:
        raise HTTPException(status_code=404, detail="transaction not found")
    return _row_to_transaction_out(row)
