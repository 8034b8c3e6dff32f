import os

import pytest

from atomic_actions import Session, Settings
from atomic_actions.core.Exceptions import SessionAlreadyFinalized, ValidationError, WrapupError
from atomic_actions.sessions import ResultCache, WrapupQueue


def test_defaults_come_from_settings():
    settings = Settings(result_cache_size=4096, result_cache_lifespan=2.5, result_cache_max_entries=3)
    session = Session(settings=settings)
    assert session.result_cache.max_size == 4096
    assert session.result_cache.lifespan == 2.5
    assert session.result_cache.max_entries == 3
    assert session.autofill == {}
    assert session.wrapup.is_empty


def test_arbitrary_data(session):
    session.set("request", "r-1")
    assert session.has("request")
    assert session.get("request") == "r-1"
    assert session.get("missing", 0) == 0
    assert session.keys == ["request"]
    with pytest.raises(TypeError):
        session.set(1, "x")


def test_custom_members():
    cache = ResultCache(1024, 1)
    wrapup = WrapupQueue()
    session = Session({"user": "ana"}, wrapup, cache, Settings())
    assert session.result_cache is cache
    assert session.wrapup is wrapup
    assert session.autofill == {"user": "ana"}


@pytest.mark.asyncio
async def test_finalize_runs_wrapup_once(session):
    calls = []

    async def cleanup():
        calls.append("async")

    session.wrapup.append(cleanup)
    session.wrapup.append(lambda: calls.append("sync"))
    session.result_cache.set("k", 1)

    assert await session.finalize() is True
    assert sorted(calls) == ["async", "sync"]
    assert session.wrapup.is_empty
    assert "k" not in session.result_cache
    assert session.finalized

    with pytest.raises(SessionAlreadyFinalized):
        await session.finalize()
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_wrapup_rejects_reentrant_append(session):
    async def reentrant():
        session.wrapup.append(lambda: None)

    session.wrapup.append(reentrant)
    with pytest.raises(WrapupError):
        await session.wrapup.execute()


@pytest.mark.asyncio
async def test_shared_file_deletion_runs_once(registry, session, tmp_path):
    upload = tmp_path / "upload.bin"
    upload.write_bytes(b"data")

    first = registry.create_action("upload.process", session)
    second = registry.create_action("upload.process", session)
    first.input("upload").value = str(upload)
    second.input("upload").value = str(upload)

    assert await first.execute() is True
    assert await second.execute() is True
    assert len(session.wrapup) == 2
    assert len(await session.wrapup.contents()) == 1

    await session.finalize()
    assert not os.path.exists(upload)


@pytest.mark.asyncio
async def test_allow_duplicate_keeps_every_action(registry, session, tmp_path):
    upload = tmp_path / "upload.bin"
    upload.write_bytes(b"data")
    for _ in range(2):
        delete = registry.create_action("file.delete", session)
        delete.input("file").value = str(upload)
        session.wrapup.append(delete, allow_duplicate=True)
    assert len(await session.wrapup.contents()) == 2
    assert len(await session.wrapup.contents(callables=False)) == 2
    assert await session.wrapup.contents(actions=False) == []


def test_wrapup_rejects_non_callables():
    with pytest.raises(TypeError):
        WrapupQueue().append("not callable")


@pytest.mark.asyncio
async def test_describe_error_follows_settings(registry, settings):
    for expose in (False, True):
        session = Session(settings=settings.with_overrides(expose_nested_validation=expose))
        action = registry.create_action("math.square", session)
        action.input("x").value = 2
        action.input("skip_b").value = True
        with pytest.raises(ValidationError) as info:
            await action.execute()
        payload = session.describe_error(info.value)
        assert payload["origin"] == "nested"
        assert ("input_name" in payload) is expose
