from typing import List

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..models.stock import Stock


class StockRepository:
    def __init__(self, session: Session):
        self.session = session

    def top_by_market_cap(self, limit: int = 30) -> List[Stock]:
        return self.session.query(Stock).order_by(desc(Stock.market_cap)).limit(limit).all()
