"""Tests for run_async and async action misuse."""

import asyncio

import pytest

from verdict import Activation, AsyncActionMisuseError, RuleActionError, RunOptions, SkipReason, ruleset


def _log_action(name, delay):
    async def action(ctx):
        ctx.effects["log"].append(f"{name}:start")
        await asyncio.sleep(delay)
        ctx.effects["log"].append(f"{name}:end")

    return action


class TestRunAsync:
    @pytest.mark.asyncio
    async def test_actions_complete_in_rule_order(self):
        engine = (
            ruleset("async")
            .default_effects(lambda: {"log": []})
            .rule("slow").priority(2).then(_log_action("slow", 0.02)).end()
            .rule("fast").priority(1).then(_log_action("fast", 0)).end()
            .compile()
        )
        result = await engine.run_async({})

        assert result.fired == ["slow", "fast"]
        assert result.effects["log"] == ["slow:start", "slow:end", "fast:start", "fast:end"]

    @pytest.mark.asyncio
    async def test_awaited_patch_is_merged(self):
        async def score(ctx):
            await asyncio.sleep(0)
            return {"stats": {"score": 7}}

        engine = (
            ruleset("async")
            .default_effects(lambda: {"stats": {"score": 0, "max": 10}})
            .rule("score").then_async(score).end()
            .compile()
        )
        result = await engine.run_async({}, merge_strategy="deep")
        assert result.effects == {"stats": {"score": 7, "max": 10}}

    @pytest.mark.asyncio
    async def test_sync_actions_run_under_run_async(self):
        engine = (
            ruleset("mixed")
            .default_effects(lambda: {"log": []})
            .rule("sync").priority(2).then(lambda ctx: ctx.effects["log"].append("sync")).end()
            .rule("async").priority(1).then(_log_action("async", 0)).end()
            .compile()
        )
        result = await engine.run_async({})
        assert result.effects["log"] == ["sync", "async:start", "async:end"]

    @pytest.mark.asyncio
    async def test_rejected_action_rolls_back(self):
        async def fail(ctx):
            ctx.effects["count"] = 5
            await asyncio.sleep(0)
            raise RuntimeError("remote call failed")

        engine = (
            ruleset("async")
            .default_effects(lambda: {"count": 0})
            .rule("fail").priority(2).then(fail).end()
            .rule("ok").priority(1).then(lambda ctx: {"ok": True}).end()
            .compile()
        )
        result = await engine.run_async({}, rollback_on_error=True)
        assert result.effects == {"count": 0, "ok": True}
        assert result.trace[0].error == "remote call failed"

        with pytest.raises(RuleActionError):
            await engine.run_async({})


# =============================================================================
# Options Under run_async
# =============================================================================


async def noop(ctx):
    return None


def _async_append(name):
    async def action(ctx):
        await asyncio.sleep(0)
        ctx.effects["log"].append(name)

    return action


class TestRunAsyncOptions:
    @pytest.mark.asyncio
    async def test_disabled(self, always_true):
        engine = (
            ruleset("skip")
            .default_effects(dict)
            .rule("off").enabled(False).when(always_true).then(noop).end()
            .compile()
        )
        result = await engine.run_async({})
        assert result.trace[0].skipped_reason == SkipReason.DISABLED
        assert result.trace[0].conditions == []
        assert result.fired == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "options,skipped_rule,reason",
        [
            ({"include_tags": {"age"}}, "vip", SkipReason.TAG_FILTERED),
            ({"exclude_tags": {"marketing"}}, "vip", SkipReason.TAG_EXCLUDED),
            ({"include_tags": {"marketing"}}, "adult", SkipReason.TAG_FILTERED),
            ({"exclude_tags": {"age"}}, "adult", SkipReason.TAG_EXCLUDED),
        ],
    )
    async def test_tag_filters_match_sync_run(
        self, eligibility_engine, adult_facts, options, skipped_rule, reason
    ):
        result = await eligibility_engine.run_async(adult_facts, **options)
        expected = eligibility_engine.run(adult_facts, **options)

        trace = {t.rule_id: t for t in result.trace}
        assert trace[skipped_rule].skipped_reason == reason
        assert trace[skipped_rule].conditions == []
        assert result.fired == expected.fired
        assert result.effects == expected.effects

    @pytest.mark.asyncio
    async def test_untagged_rules_are_filtered(self):
        engine = ruleset("r").default_effects(dict).rule("r").then(noop).end().compile()
        result = await engine.run_async({}, include_tags=["anything"])
        assert result.trace[0].skipped_reason == SkipReason.TAG_FILTERED

    @pytest.mark.asyncio
    async def test_first_activation_stops(self, always_true, always_false):
        engine = (
            ruleset("first")
            .default_effects(lambda: {"log": []})
            .rule("miss").priority(3).when(always_false).then(_async_append("miss")).end()
            .rule("hit").priority(2).when(always_true).then(_async_append("hit")).end()
            .rule("later").priority(1).when(always_true).then(_async_append("later")).end()
            .compile()
        )
        result = await engine.run_async({}, activation="first")
        assert result.fired == ["hit"]
        assert result.effects["log"] == ["hit"]
        assert [t.rule_id for t in result.trace] == ["miss", "hit"]

        result = await engine.run_async({}, RunOptions(activation=Activation.FIRST))
        assert result.fired == ["hit"]

    @pytest.mark.asyncio
    async def test_immutable_actions_see_a_copy(self):
        seen = []
        defaults = {"touched": False}

        async def capture(ctx):
            await asyncio.sleep(0)
            seen.append(ctx.effects)
            ctx.effects["touched"] = True

        engine = (
            ruleset("copy")
            .default_effects(lambda: defaults)
            .rule("a").priority(2).then(capture).end()
            .rule("b").priority(1).then(capture).end()
            .compile()
        )
        result = await engine.run_async({}, effects_mode="immutable")
        assert seen[0] is not seen[1]
        assert result.effects == {"touched": True}
        assert defaults == {"touched": False}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", ["mutable", "immutable"])
    async def test_rollback_in_each_mode(self, mode):
        async def fail(ctx):
            ctx.effects["count"] = 99
            await asyncio.sleep(0)
            raise RuntimeError("boom")

        engine = (
            ruleset("rollback")
            .default_effects(lambda: {"count": 0, "by": None})
            .rule("first").priority(2).then(fail).end()
            .rule("second").priority(1).then(lambda ctx: {"by": "second"}).end()
            .compile()
        )
        result = await engine.run_async({}, rollback_on_error=True, effects_mode=mode)

        assert result.fired == ["first", "second"]
        assert result.effects == {"count": 0, "by": "second"}
        assert result.trace[0].error == "boom"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", ["mutable", "immutable"])
    async def test_error_without_rollback_raises(self, mode):
        async def fail(ctx):
            raise RuntimeError("boom")

        engine = ruleset("errors").default_effects(dict).rule("fail").then(fail).end().compile()
        with pytest.raises(RuleActionError) as exc_info:
            await engine.run_async({}, effects_mode=mode)
        assert exc_info.value.rule_id == "fail"


class TestAsyncMisuse:
    def test_sync_run_rejects_async_action(self):
        async def action(ctx):
            ctx.effects["touched"] = True

        engine = (
            ruleset("misuse")
            .default_effects(lambda: {"touched": False})
            .rule("async").then(action).end()
            .compile()
        )
        with pytest.raises(AsyncActionMisuseError, match="run_async"):
            engine.run({})

    def test_undeclared_awaitable_is_rejected(self):
        effects = {"touched": False}

        async def later():
            effects["touched"] = True

        engine = (
            ruleset("misuse")
            .default_effects(lambda: effects)
            .rule("sneaky").then(lambda ctx: later()).end()
            .compile()
        )
        with pytest.raises(AsyncActionMisuseError) as exc_info:
            engine.run({}, rollback_on_error=True)

        assert exc_info.value.rule_id == "sneaky"
        assert effects == {"touched": False}

    def test_misuse_is_not_rolled_back(self):
        async def action(ctx):
            return None

        engine = (
            ruleset("misuse")
            .default_effects(dict)
            .rule("async").then_async(action).end()
            .compile()
        )
        with pytest.raises(AsyncActionMisuseError):
            engine.run({}, rollback_on_error=True)
