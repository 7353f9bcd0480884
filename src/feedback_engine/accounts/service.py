"""Account service: first-launch dashboard account seeding."""

import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_engine.accounts.models import AccountModel

DASHBOARD_PROVIDER = "dashboard"
FIRST_LAUNCH_ID = "first-launch"
DASHBOARD_TOKEN_PREFIX = "fb_dash_"


def generate_dashboard_token() -> str:
    return f"{DASHBOARD_TOKEN_PREFIX}{secrets.token_hex(24)}"


class AccountService:
    """Dashboard account operations."""

    async def get_by_provider(
        self, session: AsyncSession, provider: str, provider_account_id: str
    ) -> AccountModel | None:
        result = await session.execute(
            select(AccountModel).where(
                AccountModel.provider == provider,
                AccountModel.provider_account_id == provider_account_id,
            )
        )
        return result.scalar_one_or_none()

    async def seed_first_account(self, session: AsyncSession) -> tuple[AccountModel, bool]:
        """Create the first-launch account if missing. Returns (account, created)."""
        existing = await self.get_by_provider(session, DASHBOARD_PROVIDER, FIRST_LAUNCH_ID)
        if existing is not None:
            return existing, False
        account = AccountModel(
            provider=DASHBOARD_PROVIDER,
            provider_account_id=FIRST_LAUNCH_ID,
            display_name="First launch",
        )
        session.add(account)
        await session.flush()
        return account, True
