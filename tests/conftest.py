"""Pytest configuration and shared fixtures for all tests."""

import itertools
import os
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

# Minimal environment for Settings() before anything imports it
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./earnhub-test.db")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
import pytest_asyncio

from earnhub.database import (
    create_engine,
    create_session_maker,
    init_models,
    seed_vip_tiers,
)
from earnhub.models import FinancialRecordType, User
from earnhub.services import (
    BalanceDelta,
    CommissionSettlementService,
    DepositService,
    LedgerStore,
    ReferralAttachmentService,
    ReferralQueryManager,
    TaskService,
    UserService,
    VideoService,
    VipEligibilityEvaluator,
    WithdrawalService,
)


@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-backed SQLite engine with the schema created."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(engine):
    """Session factory over a database seeded with the default VIP tiers."""
    maker = create_session_maker(engine)
    await seed_vip_tiers(maker)
    return maker


@pytest.fixture
def ledger(session_maker):
    """Ledger store bound to the test database."""
    return LedgerStore(session_maker)


@pytest.fixture
def settlement(ledger):
    """Commission settlement service."""
    return CommissionSettlementService(ledger)


@pytest.fixture
def attachment(ledger):
    """Referral attachment service."""
    return ReferralAttachmentService(ledger)


@pytest.fixture
def evaluator(ledger, settlement):
    """VIP eligibility evaluator."""
    return VipEligibilityEvaluator(ledger, settlement)


@pytest.fixture
def user_service(ledger, attachment):
    """User service."""
    return UserService(ledger, attachment)


@pytest.fixture
def deposit_service(ledger, evaluator):
    """Deposit service."""
    return DepositService(ledger, evaluator)


@pytest.fixture
def video_service(ledger, settlement):
    """Video service."""
    return VideoService(ledger, settlement)


@pytest.fixture
def task_service(ledger):
    """Task service."""
    return TaskService(ledger)


@pytest.fixture
def withdrawal_service(ledger):
    """Withdrawal service."""
    return WithdrawalService(ledger)


@pytest.fixture
def query_manager(ledger):
    """Referral query manager."""
    return ReferralQueryManager(ledger)


@pytest.fixture
def make_user(ledger):
    """
    Factory creating users directly in the ledger.

    Balances are funded through update_balances so every test user
    reconciles against its audit log.
    """
    counter = itertools.count(1)

    async def _make(
        vip_rank: int = 0,
        income: Decimal = Decimal("0"),
        personal: Decimal = Decimal("0"),
        status: str = "active",
        trial_ends_on: date | None = None,
    ) -> User:
        n = next(counter)

        async def _create(tx) -> User:
            user = await tx.users.create(
                username=f"user{n}",
                referral_code=f"CODE{n:04d}",
                vip_rank=vip_rank,
                status=status,
                trial_ends_on=trial_ends_on,
            )
            if personal > 0:
                await tx.update_balances(
                    user.id,
                    BalanceDelta(personal=personal, invested=personal),
                    FinancialRecordType.DEPOSIT,
                )
            if income > 0:
                await tx.update_balances(
                    user.id,
                    BalanceDelta(income=income, total_earnings=income),
                    FinancialRecordType.TASK_REWARD,
                )
            return await tx.get_user_for_update(user.id)

        return await ledger.run(_create)

    return _make


@pytest.fixture
def reload(ledger):
    """Re-read a user in a fresh transaction."""

    async def _reload(user_id: int) -> User:
        return await ledger.run(lambda tx: tx.get_user(user_id))

    return _reload


@pytest.fixture
def refer(attachment):
    """Attach child under parent by the parent's referral code."""

    async def _refer(child: User, parent: User):
        return await attachment.attach(child.id, parent.referral_code)

    return _refer
