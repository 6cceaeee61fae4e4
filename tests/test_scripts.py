"""Tests for the operator scripts."""

import asyncio

import pytest
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import async_sessionmaker
from typer.testing import CliRunner

from app.features.members.models import Member
from app.features.permissions.dependencies import fetch_role_names
from scripts import grant_role, sync_directory


runner = CliRunner()


@pytest.fixture
def sessions(primary_engine):
    return async_sessionmaker(primary_engine, expire_on_commit=False, autoflush=False)


def stored_roles(sessions, user_id):
    async def fetch():
        async with sessions() as session:
            return await fetch_role_names(session, user_id)
    return asyncio.run(fetch())


class TestGrantRole:
    @pytest.fixture(autouse=True)
    def primary(self, monkeypatch, sessions):
        async def init_db():
            pass

        monkeypatch.setattr(grant_role, "AsyncSessionLocal", sessions)
        monkeypatch.setattr(grant_role, "init_db", init_db)

    def test_defaults_to_administrator(self, sessions):
        result = runner.invoke(grant_role.cli, ["user-1"])

        assert result.exit_code == 0, result.output
        assert stored_roles(sessions, "user-1") == ["administrator"]

    def test_replaces_existing_roles(self, sessions):
        runner.invoke(grant_role.cli, ["user-1", "member"])
        result = runner.invoke(grant_role.cli, ["user-1", "staff"])

        assert result.exit_code == 0, result.output
        assert stored_roles(sessions, "user-1") == ["staff"]

    def test_rejects_unknown_role(self, sessions):
        result = runner.invoke(grant_role.cli, ["user-1", "owner"])

        assert result.exit_code != 0
        assert stored_roles(sessions, "user-1") == []

    @pytest.mark.parametrize("role", ["viewer", "admin"])
    def test_rejects_unassignable_role(self, sessions, role):
        result = runner.invoke(grant_role.cli, ["user-1", role])

        assert result.exit_code == 2
        assert "cannot be assigned" in result.output
        assert stored_roles(sessions, "user-1") == []


class TestSyncDirectory:
    @pytest.fixture(autouse=True)
    def stores(self, monkeypatch, sessions, primary_engine, secondary_engine):
        monkeypatch.setattr(sync_directory, "AsyncSessionLocal", sessions)
        monkeypatch.setattr(sync_directory, "engine", primary_engine)
        monkeypatch.setattr(sync_directory, "create_secondary_engine", lambda: secondary_engine)

        async def seed():
            async with primary_engine.begin() as conn:
                await conn.execute(insert(Member.__table__).values(id="m1", name="Jane Doe"))

        asyncio.run(seed())

    def test_administrator_runs_sync(self, caller, primary_engine, secondary_store):
        caller.login("admin-1", "administrator", engine=primary_engine)

        result = runner.invoke(sync_directory.cli, ["admin-1", "--direction", "source-to-dest"])

        assert result.exit_code == 0, result.output
        rows = asyncio.run(secondary_store.fetch_rows())
        assert [row["name"] for row in rows] == ["Jane Doe"]

    def test_non_administrator_refused(self, caller, primary_engine, tmp_path):
        caller.login("staff-1", "staff", engine=primary_engine)

        result = runner.invoke(sync_directory.cli, ["staff-1"])

        assert result.exit_code == 1
        assert not (tmp_path / "secondary.db").exists()

    def test_legacy_admin_refused(self, caller, primary_engine, tmp_path):
        caller.login("admin-1", "admin", engine=primary_engine)

        result = runner.invoke(sync_directory.cli, ["admin-1"])

        assert result.exit_code == 1
        assert not (tmp_path / "secondary.db").exists()

    def test_direction_ignores_case(self, caller, primary_engine, secondary_store):
        caller.login("admin-1", "administrator", engine=primary_engine)

        result = runner.invoke(sync_directory.cli, ["admin-1", "--direction", "Source-To-Dest"])

        assert result.exit_code == 0, result.output
        assert len(asyncio.run(secondary_store.fetch_rows())) == 1

    def test_unknown_direction(self, caller, primary_engine):
        caller.login("admin-1", "administrator", engine=primary_engine)

        result = runner.invoke(sync_directory.cli, ["admin-1", "--direction", "sideways"])

        assert result.exit_code == 2
