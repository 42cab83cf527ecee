from sqlalchemy import Column, String, Float, BigInteger

from ..core.database import Base


class Stock(Base):
    """Market snapshot rows used to seed sector articles."""
    __tablename__ = "stocks"

    symbol = Column(String(20), primary_key=True)
    name = Column(String(200), nullable=False)
    sector = Column(String(100))
    current_price = Column(Float)
    price_change_percent = Column(Float)
    volume = Column(BigInteger)
    market_cap = Column(Float, index=True)
