"""Tests for transaction handling."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taxonomy.infra.database import atomic
from taxonomy.models import Taxonomy


async def count_nodes(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(Taxonomy))
    return result.scalar_one()


class TestAtomic:
    """Tests for the atomic() transaction block."""

    @pytest.mark.asyncio
    async def test_commits_on_success(self, session: AsyncSession):
        async with atomic(session):
            session.add(Taxonomy(type="category"))

        assert await count_nodes(session) == 1

    @pytest.mark.asyncio
    async def test_rolls_back_and_reraises(self, session: AsyncSession):
        with pytest.raises(RuntimeError, match="boom"):
            async with atomic(session):
                session.add(Taxonomy(type="category"))
                await session.flush()
                raise RuntimeError("boom")

        assert await count_nodes(session) == 0
