import pytest

from atomic_actions import Action, Session, Settings, build_registry


class Multiply(Action):
    def declare_inputs(self):
        self.create_input("a: numeric")
        self.create_input("b: numeric")

    async def _perform(self, data):
        return data["a"] * data["b"]


class CachedMultiply(Multiply):
    is_cacheable = True

    def __init__(self, *args, **kwargs):
        self.perform_calls = 0
        super().__init__(*args, **kwargs)

    async def _perform(self, data):
        self.perform_calls += 1
        return {"product": data["a"] * data["b"]}


class Boom(Action):
    def declare_inputs(self):
        self.create_input("label?: text")

    async def _perform(self, data):
        raise RuntimeError("boom")


class Recovering(Boom):
    async def _finalize(self, err, value):
        if isinstance(err, RuntimeError):
            return "recovered"
        return await super()._finalize(err, value)


class SquareViaNested(Action):
    def declare_inputs(self):
        self.create_input("x: numeric")
        self.create_input("skip_b?: bool", {"default_value": False})

    async def _perform(self, data):
        child = self.create_action("math.multiply")
        child.input("a").value = data["x"]
        if not data["skip_b"]:
            child.input("b").value = data["x"]
        return await child.execute()


class ProcessUpload(Action):
    """Queues the removal of the uploaded file for when the session finalizes."""

    def declare_inputs(self):
        self.create_input("upload: filepath", {"exists": True})

    async def _perform(self, data):
        cleanup = self.create_action("file.delete")
        cleanup.input("file").value = data["upload"]
        self.session.wrapup.append(cleanup)
        return True


@pytest.fixture
def settings():
    return Settings(result_cache_size=1024 * 1024, result_cache_lifespan=60.0)


@pytest.fixture
def session(settings):
    return Session(settings=settings)


@pytest.fixture
def registry():
    registry = build_registry()
    registry.register_action(Multiply, "math.multiply")
    registry.register_action(CachedMultiply, "math.cachedMultiply")
    registry.register_action(Boom, "test.boom")
    registry.register_action(Recovering, "test.recovering")
    registry.register_action(SquareViaNested, "math.square")
    registry.register_action(ProcessUpload, "upload.process")
    return registry

