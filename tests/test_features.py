"""
Behavioural tests run against every built-in driver.
"""

import threading

import pytest

from flagkeeper.core.features import (
    FeatureResolved,
    UnknownFeatureResolved,
)
from tests.conftest import Counter


def test_unknown_feature_is_inactive_and_not_stored(driver_manager, recorder):
    """Test that undefined features are False and leave no trace in storage."""
    assert driver_manager.active("missing") is False
    assert driver_manager.value("missing") is False
    assert "missing" not in driver_manager.stored()

    events = recorder.of(UnknownFeatureResolved)
    assert [e.feature for e in events] == ["missing"]
    assert events[0].scope is None


def test_unknown_feature_resolves_fresh_once_defined(driver_manager):
    assert driver_manager.active("later") is False

    driver_manager.define("later", "now")

    assert driver_manager.value("later") == "now"
    assert driver_manager.stored() == ["later"]


@pytest.mark.parametrize("value", [0, "", None, [], {"a": 1}, "dark", True])
def test_non_false_values_are_active_and_returned_exactly(driver_manager, value):
    """Test that only False is inactive and values are not coerced."""
    driver_manager.define("foo", lambda scope: value)

    assert driver_manager.active("foo") is True
    assert driver_manager.value("foo") == value
    assert driver_manager.inactive("foo") is False

    driver_manager.flush_cache()

    assert driver_manager.value("foo") == value


def test_resolver_runs_once_per_scope(driver_manager, recorder):
    counter = Counter()
    driver_manager.define("foo", counter)

    assert driver_manager.active("foo")
    assert driver_manager.active("foo")
    assert driver_manager.for_("tim").active("foo")
    assert driver_manager.for_("tim").active("foo")

    assert counter.calls == [None, "tim"]
    assert [e.scope for e in recorder.of(FeatureResolved)] == [None, "tim"]


def test_stored_value_survives_cache_flush(driver_manager):
    """Test that the store, not the cache, is the source of truth."""
    counter = Counter("v1")
    driver_manager.define("foo", counter)

    assert driver_manager.value("foo") == "v1"
    driver_manager.flush_cache()
    counter.value = "v2"

    assert driver_manager.value("foo") == "v1"
    assert counter.count == 1


def test_null_and_empty_string_scopes_are_independent(driver_manager):
    driver_manager.define("foo", False)

    driver_manager.for_("").activate("foo")

    assert driver_manager.for_("").active("foo") is True
    assert driver_manager.for_(None).active("foo") is False

    driver_manager.flush_cache()

    assert driver_manager.for_("").active("foo") is True
    assert driver_manager.for_(None).active("foo") is False


def test_all_are_active_uses_the_cross_product(driver_manager):
    """Test that every (feature, scope) pair must be active."""
    driver_manager.define("x", lambda scope: scope in ("A", "B"))
    driver_manager.define("y", lambda scope: scope == "A")

    assert driver_manager.for_(["A", "B"]).all_are_active(["x"]) is True
    assert driver_manager.for_(["A", "B"]).all_are_active(["x", "y"]) is False
    assert driver_manager.for_("A").all_are_active(["x", "y"]) is True


def test_some_are_active_is_per_scope(driver_manager):
    """Test that 'some' must hold for each scope individually."""
    driver_manager.define("x", lambda scope: scope == "A")
    driver_manager.define("y", lambda scope: False)
    driver_manager.define("z", lambda scope: scope == "B")

    # x is active for A only: B has no active feature among [x, y]
    assert driver_manager.for_(["A", "B"]).some_are_active(["x", "y"]) is False
    # A has x, B has z
    assert driver_manager.for_(["A", "B"]).some_are_active(["x", "z"]) is True


def test_inactive_mirrors(driver_manager):
    driver_manager.define("x", lambda scope: scope == "A")
    driver_manager.define("y", False)

    scoped = driver_manager.for_(["A", "B"])

    assert scoped.all_are_inactive(["y"]) is True
    assert scoped.all_are_inactive(["x", "y"]) is False
    assert scoped.some_are_inactive(["x", "y"]) is True
    assert scoped.some_are_inactive(["x"]) is False
    assert scoped.inactive("y") is True


def test_batched_load_resolves_each_pair_once(driver_manager):
    """Test that loading then reading never re-invokes resolvers."""
    counter = Counter()
    driver_manager.define("foo", counter)

    results = driver_manager.load({"foo": ["s1", "s2", "s3", "s2"]})

    assert results == {"foo": [True, True, True, True]}
    assert counter.calls == ["s1", "s2", "s3"]

    for scope in ["s1", "s2", "s3"]:
        assert driver_manager.for_(scope).active("foo")

    assert counter.count == 3


def test_load_missing_skips_cached_pairs(driver_manager):
    counter = Counter()
    driver_manager.define("foo", counter)
    driver_manager.for_("s1").active("foo")

    assert driver_manager.load_missing({"foo": ["s1"]}) == {}

    driver_manager.load_missing({"foo": ["s1", "s2"]})

    assert counter.calls == ["s1", "s2"]


def test_activate_invalidates_cached_value(driver_manager):
    driver_manager.define("foo", False)
    assert driver_manager.active("foo") is False

    driver_manager.activate("foo")

    assert driver_manager.active("foo") is True


def test_scenario_custom_value_for_one_scope(driver_manager):
    """Test the default scope is untouched by a scoped activation."""
    driver_manager.define("foo", lambda scope: True)

    assert driver_manager.active("foo") is True

    driver_manager.for_("tim").activate("foo", "custom")

    assert driver_manager.for_("tim").value("foo") == "custom"
    assert driver_manager.for_("tim").active("foo") is True
    assert driver_manager.active("foo") is True


def test_purge_named_feature_then_redefine(driver_manager):
    """Test that purging removes only that feature and forces re-resolution."""
    first = Counter("first")
    driver_manager.define("foo", first)
    driver_manager.define("bar", "kept")
    driver_manager.values(["foo", "bar"])

    driver_manager.purge(["foo"])

    assert driver_manager.stored() == ["bar"]

    second = Counter("second")
    driver_manager.define("foo", second)

    assert driver_manager.value("foo") == "second"
    assert second.count == 1
    assert first.count == 1


def test_purge_everything(driver_manager):
    driver_manager.define("foo", True)
    driver_manager.define("bar", True)
    driver_manager.values(["foo", "bar"])

    driver_manager.purge()

    assert driver_manager.stored() == []


def test_forget_forces_reresolution(driver_manager):
    counter = Counter()
    driver_manager.define("foo", counter)
    driver_manager.for_("tim").active("foo")

    driver_manager.for_("tim").forget("foo")
    driver_manager.for_("tim").active("foo")

    assert counter.calls == ["tim", "tim"]


def test_activate_for_everyone_overwrites_stored_scopes(driver_manager):
    driver_manager.define("foo", False)
    driver_manager.for_(["a", "b"]).all_are_active(["foo"])

    driver_manager.activate_for_everyone("foo", "on")

    assert driver_manager.for_("a").value("foo") == "on"
    assert driver_manager.for_("b").value("foo") == "on"
    # Scopes never stored still resolve from the definition
    assert driver_manager.for_("c").value("foo") is False


def test_deactivate_for_everyone(driver_manager):
    driver_manager.define("foo", True)
    driver_manager.for_(["a", "b"]).active("foo")

    driver_manager.deactivate_for_everyone(["foo"])

    driver_manager.flush_cache()
    assert driver_manager.for_(["a", "b"]).all_are_inactive("foo") is True


def test_stored_values_and_list_all(driver_manager):
    driver_manager.define("foo", lambda scope: scope != "c")
    driver_manager.for_(["a", "b", "c"]).load("foo")

    assert sorted(driver_manager.stored_values()["foo"]) == [False, True, True]
    assert driver_manager.list_all() == {"foo": {"true": 2, "false": 1}}


def test_rich_scopes_round_trip(driver_manager):
    counter = Counter("value")
    driver_manager.define("foo", counter)

    driver_manager.for_({"team": 1, "role": "admin"}).value("foo")
    driver_manager.flush_cache()
    driver_manager.for_({"role": "admin", "team": 1}).value("foo")

    assert counter.count == 1


def test_concurrent_access_to_one_store(manager):
    """Test that threads sharing the in-memory store never corrupt its cache."""
    manager.define("foo", lambda user: user.endswith("0"))
    workers = 8
    barrier = threading.Barrier(workers)
    errors = []

    def work(n: int) -> None:
        try:
            barrier.wait()
            for i in range(50):
                user = f"user-{i % 5}"
                assert manager.for_(user).active("foo") is (user == "user-0")
                manager.for_(f"worker-{n}").activate("bar", n)
                manager.activate("shared")
                if i % 10 == 0:
                    manager.flush_cache()
        except Exception as e:  # collected for the main thread
            errors.append(e)

    threads = [threading.Thread(target=work, args=(n,)) for n in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []

    manager.flush_cache()
    assert [manager.for_(f"worker-{n}").value("bar") for n in range(workers)] == list(range(workers))
    assert manager.for_([f"user-{i}" for i in range(1, 5)]).all_are_inactive("foo")
    assert manager.for_("user-0").active("foo")
    assert manager.value("shared") is True
