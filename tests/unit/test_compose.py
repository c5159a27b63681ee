"""
Unit tests for the composition engine.
"""

import asyncio

import pytest

from onionhttp.compose import NextCalledTwiceError, compose


class Ctx:
    """Bare context object; compose() never looks inside it."""

    def __init__(self):
        self.events = []


class TestOnionOrder:
    """Tests for nesting and unwinding."""

    @pytest.mark.asyncio
    async def test_before_and_after_markers_nest(self):
        """Test that before/after sections nest in onion order."""
        def marker(n):
            async def handler(ctx, next):
                ctx.events.append(f"before{n}")
                await next()
                ctx.events.append(f"after{n}")
            return handler

        ctx = Ctx()
        await compose([marker(1), marker(2), marker(3)])(ctx)

        assert ctx.events == ["before1", "before2", "before3", "after3", "after2", "after1"]

    @pytest.mark.asyncio
    async def test_after_phase_waits_for_suspended_inner_handler(self):
        """Test that after-next code waits for a suspended inner handler."""
        async def outer(ctx, next):
            ctx.events.append("outer before")
            await next()
            ctx.events.append("outer after")

        async def slow(ctx, next):
            await asyncio.sleep(0.01)
            ctx.events.append("slow done")
            await next()

        ctx = Ctx()
        await compose([outer, slow])(ctx)

        assert ctx.events == ["outer before", "slow done", "outer after"]

    @pytest.mark.asyncio
    async def test_sync_handlers_returning_next(self):
        """Test that a plain function returning next() continues the chain."""
        def first(ctx, next):
            ctx.events.append("sync")
            return next()

        async def second(ctx, next):
            ctx.events.append("async")

        ctx = Ctx()
        await compose([first, second])(ctx)

        assert ctx.events == ["sync", "async"]

    @pytest.mark.asyncio
    async def test_sync_handler_calling_next_without_returning_it(self):
        """Test that a bare next() call in a plain function still runs the rest."""
        def first(ctx, next):
            ctx.events.append("sync")
            next()
            ctx.events.append("sync returns")

        async def second(ctx, next):
            ctx.events.append("second")

        ctx = Ctx()
        await compose([first, second])(ctx)

        assert ctx.events == ["sync", "sync returns", "second"]

    @pytest.mark.asyncio
    async def test_sync_handler_without_next_still_short_circuits(self):
        """Test that a plain function that never calls next() stops the chain."""
        def first(ctx, next):
            ctx.events.append("sync")

        async def second(ctx, next):
            ctx.events.append("second")

        ctx = Ctx()
        await compose([first, second])(ctx)

        assert ctx.events == ["sync"]

    @pytest.mark.asyncio
    async def test_not_calling_next_short_circuits(self):
        """Test that skipping next() stops the chain."""
        async def stop(ctx, next):
            ctx.events.append("stop")

        async def never(ctx, next):
            ctx.events.append("never")

        ctx = Ctx()
        await compose([stop, never])(ctx)

        assert ctx.events == ["stop"]


class TestTerminalCases:
    """Tests for empty chains and next past the end."""

    @pytest.mark.asyncio
    async def test_empty_chain_resolves_without_side_effects(self):
        """Test that an empty chain resolves to None."""
        ctx = Ctx()
        result = await compose([])(ctx)

        assert result is None
        assert ctx.events == []

    @pytest.mark.asyncio
    async def test_next_past_the_end_is_a_noop(self):
        """Test that next() from the last handler resolves immediately."""
        async def last(ctx, next):
            ctx.events.append("last")
            value = await next()
            ctx.events.append(("resolved", value))

        ctx = Ctx()
        await compose([last])(ctx)

        assert ctx.events == ["last", ("resolved", None)]


class TestReentrancyGuard:
    """Tests for the one-shot continuation."""

    @pytest.mark.asyncio
    async def test_second_next_call_raises(self):
        """Test that calling next() twice raises NextCalledTwiceError."""
        runs = []

        async def twice(ctx, next):
            await next()
            await next()

        async def counted(ctx, next):
            runs.append(1)

        with pytest.raises(NextCalledTwiceError) as exc_info:
            await compose([twice, counted])(Ctx())

        assert runs == [1]
        assert "multiple times" in str(exc_info.value)
        assert "twice" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_second_call_fails_before_awaiting(self):
        """Test that the second next() call fails synchronously."""
        async def eager(ctx, next):
            pending = next()
            with pytest.raises(NextCalledTwiceError):
                next()
            await pending

        await compose([eager])(Ctx())

    def test_error_is_a_runtime_error(self):
        """Test the exception hierarchy."""
        assert issubclass(NextCalledTwiceError, RuntimeError)


class TestFailures:
    """Tests for failure propagation."""

    @pytest.mark.asyncio
    async def test_error_in_after_section_fails_the_chain(self):
        """Test that a throw after next() fails the run and skips outer after code."""
        calls = []

        async def outer(ctx, next):
            calls.append("outer before")
            await next()
            calls.append("outer after")

        async def thrower(ctx, next):
            calls.append("thrower before")
            await next()
            raise ValueError("boom")

        async def inner(ctx, next):
            calls.append("inner")

        with pytest.raises(ValueError, match="boom"):
            await compose([outer, thrower, inner])(Ctx())

        assert calls == ["outer before", "thrower before", "inner"]

    @pytest.mark.asyncio
    async def test_error_before_next_skips_later_handlers(self):
        """Test that a throw before next() runs no later handler."""
        calls = []

        def sync_thrower(ctx, next):
            raise KeyError("missing")

        async def later(ctx, next):
            calls.append("later")

        with pytest.raises(KeyError):
            await compose([sync_thrower, later])(Ctx())

        assert calls == []

    @pytest.mark.asyncio
    async def test_guarded_next_recovers(self):
        """Test that an outer handler can catch an inner failure."""
        async def guard(ctx, next):
            try:
                await next()
            except RuntimeError as e:
                ctx.events.append(f"caught {e}")
            ctx.events.append("guard after")

        async def failing(ctx, next):
            raise RuntimeError("inner failure")

        ctx = Ctx()
        await compose([guard, failing])(ctx)

        assert ctx.events == ["caught inner failure", "guard after"]


class TestComposeInput:
    """Tests for argument validation and snapshotting."""

    def test_rejects_non_sequence(self):
        """Test that a non-sequence stack is refused."""
        with pytest.raises(TypeError):
            compose(None)

    def test_rejects_non_callable_entries(self):
        """Test that non-callable entries are refused."""
        with pytest.raises(TypeError):
            compose([lambda ctx, next: None, "not callable"])

    @pytest.mark.asyncio
    async def test_later_list_mutation_does_not_leak(self):
        """Test that compose() snapshots the handler list."""
        handlers = []

        async def first(ctx, next):
            ctx.events.append("first")
            await next()

        async def added_later(ctx, next):
            ctx.events.append("added later")

        handlers.append(first)
        run = compose(handlers)
        handlers.append(added_later)

        ctx = Ctx()
        await run(ctx)

        assert ctx.events == ["first"]
        assert run.handlers == (first,)

    @pytest.mark.asyncio
    async def test_concurrent_runs_have_independent_cursors(self):
        """Test that interleaved runs do not share state."""
        async def step(ctx, next):
            ctx.events.append("step")
            await asyncio.sleep(0)
            await next()

        async def end(ctx, next):
            ctx.events.append("end")

        run = compose([step, step, end])
        a, b = Ctx(), Ctx()
        await asyncio.gather(run(a), run(b))

        assert a.events == ["step", "step", "end"]
        assert b.events == ["step", "step", "end"]
