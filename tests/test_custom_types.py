import pytest
from datetime import datetime, timezone, timedelta
from sqlalchemy import create_engine, Column, Integer
from sqlalchemy.orm import sessionmaker, declarative_base

from parkshare.shared.custom_types import UTCDateTime
from parkshare.shared.utils import as_utc

Base = declarative_base()


class Stamp(Base):
    __tablename__ = "stamps"
    id = Column(Integer, primary_key=True)
    at = Column(UTCDateTime)


@pytest.fixture(scope="function")
def db_session_custom_types():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


def test_utc_datetime_aware_to_db_and_back(db_session_custom_types):
    session = db_session_custom_types
    moment = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)

    session.add(Stamp(at=moment))
    session.commit()

    retrieved = session.query(Stamp).first()
    assert retrieved.at == moment
    assert retrieved.at.tzinfo == timezone.utc


def test_utc_datetime_naive_is_taken_as_utc(db_session_custom_types):
    session = db_session_custom_types
    naive = datetime(2026, 3, 2, 9, 30)

    session.add(Stamp(at=naive))
    session.commit()

    retrieved = session.query(Stamp).first()
    assert retrieved.at == naive.replace(tzinfo=timezone.utc)


def test_utc_datetime_other_timezone_is_converted(db_session_custom_types):
    session = db_session_custom_types
    manila = timezone(timedelta(hours=8))
    local = datetime(2026, 3, 2, 17, 30, tzinfo=manila)

    session.add(Stamp(at=local))
    session.commit()

    retrieved = session.query(Stamp).first()
    assert retrieved.at == datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)
    assert retrieved.at.tzinfo == timezone.utc


def test_utc_datetime_none_value(db_session_custom_types):
    session = db_session_custom_types

    session.add(Stamp(at=None))
    session.commit()

    assert session.query(Stamp).first().at is None


def test_as_utc():
    assert as_utc(datetime(2026, 1, 1, 8)).tzinfo == timezone.utc
    plus_two = datetime(2026, 1, 1, 10, tzinfo=timezone(timedelta(hours=2)))
    assert as_utc(plus_two) == datetime(2026, 1, 1, 8, tzinfo=timezone.utc)
