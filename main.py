import logging
from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from sqlalchemy.orm import Session

from aggregation import BudgetSummary
from cache import TTLCache
from config import get_settings
from database import get_db, init_db
from periods import DateRange, PeriodDescriptor
from results import Result, attempt
from schemas import (
    BudgetIn,
    BudgetOut,
    MainCategoryIn,
    PreferencesOut,
    PreferencesUpdate,
    SubcategoryIn,
    TransactionIn,
)
from services import (
    BudgetService,
    CategoryService,
    PeriodService,
    PreferencesService,
    TransactionService,
    local_today,
)

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Budget Periods")
period_cache = TTLCache(settings.period_cache_ttl_secs)


def _load_app_version() -> str:
    try:
        import tomllib
    except Exception:
        return "unknown"
    try:
        with open("pyproject.toml", "rb") as f:
            data = tomllib.load(f)
        return str(data.get("project", {}).get("version", "unknown"))
    except Exception:
        return "unknown"


APP_VERSION = _load_app_version()


@app.on_event("startup")
def startup_event():
    init_db()
    logger.info(f"startup: version={APP_VERSION}")


def _unwrap(result: Result):
    if not result.ok:
        raise HTTPException(status_code=503, detail=result.error)
    return result.value


def _domain_error(exc: ValueError) -> HTTPException:
    status_code = 404 if str(exc).endswith("not found") else 400
    return HTTPException(status_code=status_code, detail=str(exc))


def _parse_date(raw: Optional[str], name: str) -> Optional[date]:
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid {name} date") from exc


def period_from_request(request: Request, db: Session) -> DateRange:
    """Explicit ?start=&end= window, or the user's current period."""
    start = _parse_date(request.query_params.get("start"), "start")
    end = _parse_date(request.query_params.get("end"), "end")
    if start and end:
        try:
            return DateRange(start, end)
        except ValueError as exc:
            raise _domain_error(exc) from exc
    if start or end:
        raise HTTPException(status_code=400, detail="Provide both start and end")
    return _unwrap(attempt(PeriodService(db, cache=period_cache).current_range))


def _period_payload(descriptor: PeriodDescriptor) -> dict[str, object]:
    return {
        "label": descriptor.label,
        "start": descriptor.start.isoformat(),
        "end": descriptor.end.isoformat(),
    }


def _summary_payload(summary: BudgetSummary) -> dict[str, object]:
    payload = asdict(summary)
    payload["period_start"] = summary.period_start.isoformat()
    payload["period_end"] = summary.period_end.isoformat()
    payload["total_remaining_cents"] = summary.total_remaining_cents
    payload["categories_over_budget"] = summary.categories_over_budget
    payload["categories_under_budget"] = summary.categories_under_budget
    payload["categories_on_target"] = summary.categories_on_target
    return payload


@app.get("/api/preferences")
def api_get_preferences(db: Session = Depends(get_db)):
    prefs = _unwrap(attempt(PreferencesService(db, cache=period_cache).get))
    return PreferencesOut.model_validate(prefs)


@app.put("/api/preferences")
def api_update_preferences(data: PreferencesUpdate, db: Session = Depends(get_db)):
    service = PreferencesService(db, cache=period_cache)
    prefs = _unwrap(attempt(service.update, data))
    return PreferencesOut.model_validate(prefs)


@app.get("/api/periods/current")
def api_current_period(db: Session = Depends(get_db)):
    service = PeriodService(db, cache=period_cache)
    today = local_today()
    current = _unwrap(attempt(service.current_range, today))
    label = _unwrap(attempt(service.current_description, today))
    return _period_payload(PeriodDescriptor(current, label))


@app.get("/api/periods")
def api_periods(db: Session = Depends(get_db)):
    service = PeriodService(db, cache=period_cache)
    periods = _unwrap(attempt(service.period_options))
    return {"items": [_period_payload(p) for p in periods]}


@app.get("/api/budgets")
def api_list_budgets(request: Request, db: Session = Depends(get_db)):
    period = period_from_request(request, db)
    budgets = _unwrap(
        attempt(BudgetService(db).list_for_period, period.start, period.end)
    )
    return {
        "start": period.start.isoformat(),
        "end": period.end.isoformat(),
        "items": [BudgetOut.model_validate(b) for b in budgets],
    }


@app.put("/api/budgets")
def api_set_budget(data: BudgetIn, db: Session = Depends(get_db)):
    try:
        budget = _unwrap(attempt(BudgetService(db).set_budget, data))
    except ValueError as exc:
        raise _domain_error(exc) from exc
    return BudgetOut.model_validate(budget)


@app.delete("/api/budgets/{budget_id}", status_code=204)
def api_delete_budget(budget_id: int, db: Session = Depends(get_db)):
    try:
        _unwrap(attempt(BudgetService(db).delete_budget, budget_id))
    except ValueError as exc:
        raise _domain_error(exc) from exc
    return Response(status_code=204)


@app.get("/api/budgets/summary")
def api_budget_summary(request: Request, db: Session = Depends(get_db)):
    period = period_from_request(request, db)
    summary = _unwrap(attempt(BudgetService(db).summary, period.start, period.end))
    return _summary_payload(summary)


@app.get("/api/budgets/summary/legacy")
def api_legacy_budget_summary(db: Session = Depends(get_db)):
    summary = _unwrap(attempt(BudgetService(db).legacy_summary))
    return _summary_payload(summary)


@app.post("/api/budgets/copy-previous")
def api_copy_previous_budgets(db: Session = Depends(get_db)):
    created = _unwrap(attempt(BudgetService(db).copy_from_previous_period))
    return {"created": created}


@app.post("/api/budgets/snapshot")
def api_record_budget_actuals(request: Request, db: Session = Depends(get_db)):
    period = period_from_request(request, db)
    updated = _unwrap(
        attempt(BudgetService(db).record_actuals, period.start, period.end)
    )
    return {"updated": updated}


@app.post("/api/main-categories", status_code=201)
def api_create_main_category(data: MainCategoryIn, db: Session = Depends(get_db)):
    try:
        category = CategoryService(db).create_main(data)
    except ValueError as exc:
        raise _domain_error(exc) from exc
    return {"id": category.id, "name": category.name, "type": category.type.value}


@app.post("/api/subcategories", status_code=201)
def api_create_subcategory(data: SubcategoryIn, db: Session = Depends(get_db)):
    try:
        sub = CategoryService(db).create_subcategory(data)
    except ValueError as exc:
        raise _domain_error(exc) from exc
    return {
        "id": sub.id,
        "main_category_id": sub.main_category_id,
        "name": sub.name,
        "budget_amount_cents": sub.budget_amount_cents,
    }


@app.post("/api/transactions", status_code=201)
def api_create_transaction(data: TransactionIn, db: Session = Depends(get_db)):
    try:
        txn = TransactionService(db).create(data)
    except ValueError as exc:
        raise _domain_error(exc) from exc
    return {
        "id": txn.id,
        "date": txn.date.isoformat(),
        "type": txn.type.value,
        "status": txn.status.value,
        "amount_cents": txn.amount_cents,
        "category_id": txn.category_id,
    }


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
