# app/routers/rules.py
"""Daily attendance rules — zones, session windows, breaks, goals."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from datetime import date
from app.database import get_db
from app.schemas.rules import DailyRuleIn, DailyRuleOut
from app.services.rule_service import RuleStore

router = APIRouter()


@router.get("/rules/{rule_date}", response_model=DailyRuleOut)
def get_rules(rule_date: date, db: Session = Depends(get_db)):
    rule = RuleStore(db).daily_rule(rule_date)
    if not rule:
        raise HTTPException(status_code=404, detail=f"No rules for {rule_date}")
    return rule


@router.put("/rules/{rule_date}", response_model=DailyRuleOut, summary="Replace the rules for a date")
def put_rules(rule_date: date, body: DailyRuleIn, db: Session = Depends(get_db)):
    """
    Replaces every zone and break for the date in one write.
    Records already inside keep their zone id; if the zone disappears they are
    credited according to MISSING_RULE_POLICY at check-out.
    """
    return RuleStore(db).replace_daily_rule(rule_date, body)
