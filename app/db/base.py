from sqlalchemy import BigInteger, Integer
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# SQLite는 INTEGER PRIMARY KEY 만 autoincrement(rowid) 처리
BigIntPK = BigInteger().with_variant(Integer, "sqlite")
