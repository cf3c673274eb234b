"""
Unit tests for the notification graph: observables, lazy objects,
quotes, handles and settings.
"""

from datetime import date
import gc
import pytest

from curvelib.errors import EmptyHandleError, InvalidQuoteError
from curvelib.handles import Handle, RelinkableHandle, quote_handle
from curvelib.patterns import CalculationState, LazyObject, Observable, Observer
from curvelib.quotes import DerivedQuote, SimpleQuote
from curvelib.settings import SavedSettings, Settings

from conftest import Flag


class Relay(Observable, Observer):
    """Observable observer that forwards notifications."""

    def __init__(self, *observables):
        Observable.__init__(self)
        Observer.__init__(self)
        for observable in observables:
            self.register_with(observable)

    def update(self):
        pass


class Counter(LazyObject):
    """Lazy object counting its calculations."""

    def __init__(self, source):
        super().__init__()
        self.source = source
        self.runs = 0
        self.value = None
        self.register_with(source)

    def perform_calculations(self):
        self.runs += 1
        self.value = 2.0 * self.source.value()

    def result(self):
        self.calculate()
        return self.value


class TestObservable:
    """Tests for Observable/Observer."""

    def test_notification(self):
        """Observers are notified on change."""
        quote = SimpleQuote(1.0)
        flag = Flag(quote)
        quote.set_value(2.0)
        assert flag.up

    def test_no_notification_without_change(self):
        """Setting the same value does not notify."""
        quote = SimpleQuote(1.0)
        flag = Flag(quote)
        quote.set_value(1.0)
        assert not flag.up

    def test_diamond_notified_once(self):
        """An observer reachable along two paths is updated exactly once."""
        quote = SimpleQuote(1.0)
        left = Relay(quote)
        right = Relay(quote)
        bottom = Flag(left, right, quote)

        quote.set_value(2.0)

        assert bottom.count == 1

    def test_transitive_notification(self):
        """Notifications reach observers of observers."""
        quote = SimpleQuote(1.0)
        relay = Relay(Relay(quote))
        flag = Flag(relay)
        quote.set_value(2.0)
        assert flag.up

    def test_registration_idempotent(self):
        quote = SimpleQuote(1.0)
        flag = Flag(quote)
        flag.register_with(quote)
        quote.set_value(3.0)
        assert flag.count == 1
        assert len(quote.observers) == 1

    def test_unregister(self):
        quote = SimpleQuote(1.0)
        flag = Flag(quote)
        flag.unregister_with(quote)
        quote.set_value(2.0)
        assert not flag.up
        assert flag.observables == []

    def test_observers_are_weak(self):
        """Dropped observers do not stay registered."""
        quote = SimpleQuote(1.0)
        flag = Flag(quote)
        assert len(quote.observers) == 1
        del flag
        gc.collect()
        assert quote.observers == []
        quote.set_value(2.0)

    def test_failing_observer_does_not_block_others(self):
        """All observers run even if one raises."""

        class Broken(Observer):
            def update(self):
                raise ValueError("boom")

        quote = SimpleQuote(1.0)
        broken = Broken()
        broken.register_with(quote)
        flag = Flag(quote)

        with pytest.raises(RuntimeError):
            quote.set_value(2.0)
        assert flag.up


class TestLazyObject:
    """Tests for LazyObject."""

    def test_calculates_on_demand(self):
        """Notification marks dirty; calculation waits for a query."""
        quote = SimpleQuote(1.0)
        lazy = Counter(quote)
        assert lazy.state is CalculationState.DIRTY

        assert lazy.result() == 2.0
        assert lazy.runs == 1
        assert lazy.is_calculated

        quote.set_value(3.0)
        assert lazy.state is CalculationState.DIRTY
        assert lazy.runs == 1

        assert lazy.result() == 6.0
        assert lazy.runs == 2

    def test_repeated_queries_calculate_once(self):
        lazy = Counter(SimpleQuote(1.0))
        lazy.result()
        lazy.result()
        assert lazy.runs == 1

    def test_forwards_notifications(self):
        """Observers of a lazy object hear about its inputs."""
        quote = SimpleQuote(1.0)
        lazy = Counter(quote)
        flag = Flag(lazy)
        quote.set_value(2.0)
        assert flag.up

    def test_frozen(self):
        """Frozen objects neither recalculate nor forward."""
        quote = SimpleQuote(1.0)
        lazy = Counter(quote)
        lazy.result()
        lazy.freeze()
        flag = Flag(lazy)

        quote.set_value(5.0)

        assert not flag.up
        assert lazy.result() == 2.0

        lazy.unfreeze()
        assert flag.up
        assert lazy.result() == 10.0

    def test_recalculate(self):
        lazy = Counter(SimpleQuote(1.0))
        lazy.result()
        lazy.recalculate()
        assert lazy.runs == 2

    def test_failed_calculation_stays_dirty(self):
        """An exception leaves the object dirty for the next query."""
        quote = SimpleQuote()
        lazy = Counter(quote)
        with pytest.raises(InvalidQuoteError):
            lazy.result()
        assert lazy.state is CalculationState.DIRTY
        quote.set_value(1.5)
        assert lazy.result() == 3.0


class TestQuotes:
    """Tests for quotes."""

    def test_simple_quote(self):
        quote = SimpleQuote(0.05, name="DEP3M")
        assert quote.is_valid()
        assert quote.value() == 0.05
        assert quote.set_value(0.06) == pytest.approx(0.01)

    def test_invalid_quote(self):
        quote = SimpleQuote()
        assert not quote.is_valid()
        with pytest.raises(InvalidQuoteError):
            quote.value()

    def test_reset(self):
        quote = SimpleQuote(1.0)
        flag = Flag(quote)
        quote.reset()
        assert not quote.is_valid()
        assert flag.up

    def test_derived_quote(self):
        """Derived quotes follow their underlying."""
        base = SimpleQuote(95.0)
        rate = DerivedQuote(base, lambda p: 1.0 - p / 100.0)
        flag = Flag(rate)

        assert abs(rate.value() - 0.05) < 1e-15
        base.set_value(96.0)
        assert flag.up
        assert abs(rate.value() - 0.04) < 1e-15


class TestHandles:
    """Tests for handles."""

    def test_empty_handle(self):
        handle = Handle()
        assert handle.empty()
        with pytest.raises(EmptyHandleError):
            handle.current_link()

    def test_handle_forwards(self):
        quote = SimpleQuote(1.0)
        handle = Handle(quote)
        flag = Flag(handle)
        quote.set_value(2.0)
        assert flag.up

    def test_handle_without_registration(self):
        """A handle that does not observe its link stays silent."""
        quote = SimpleQuote(1.0)
        handle = Handle(quote, register_as_observer=False)
        flag = Flag(handle)
        quote.set_value(2.0)
        assert not flag.up

    def test_relink(self):
        """Relinking notifies and switches observation."""
        first, second = SimpleQuote(1.0), SimpleQuote(2.0)
        handle = RelinkableHandle(first)
        flag = Flag(handle)

        handle.link_to(second)
        assert flag.up
        assert handle.current_link().value() == 2.0

        flag.lower()
        first.set_value(10.0)
        assert not flag.up
        second.set_value(20.0)
        assert flag.up

    def test_relink_same_is_noop(self):
        quote = SimpleQuote(1.0)
        handle = RelinkableHandle(quote)
        flag = Flag(handle)
        handle.link_to(quote)
        assert not flag.up

    def test_quote_handle(self):
        assert quote_handle(0.03).current_link().value() == 0.03
        handle = Handle(SimpleQuote(1.0))
        assert quote_handle(handle) is handle


class TestSettings:
    """Tests for the global evaluation date."""

    def test_evaluation_date_notifies(self, evaluation_date):
        settings = Settings.instance()
        flag = Flag(settings)
        settings.evaluation_date = date(2024, 2, 1)
        assert flag.up
        assert settings.evaluation_date == date(2024, 2, 1)

    def test_same_date_does_not_notify(self, evaluation_date):
        flag = Flag(Settings.instance())
        Settings.instance().evaluation_date = evaluation_date
        assert not flag.up

    def test_saved_settings_restore(self, evaluation_date):
        with SavedSettings():
            Settings.instance().evaluation_date = date(2030, 1, 1)
        assert Settings.instance().evaluation_date == evaluation_date

    def test_reset_tracks_today(self, evaluation_date):
        settings = Settings.instance()
        flag = Flag(settings)
        settings.reset_evaluation_date()
        assert settings.evaluation_date == date.today()
        assert flag.up


class TestUnregister:
    """Tests for dropping subscriptions."""

    def test_unregister_with_all(self):
        first, second = SimpleQuote(1.0), SimpleQuote(2.0)
        flag = Flag(first, second)
        flag.unregister_with_all()
        first.set_value(3.0)
        second.set_value(4.0)
        assert not flag.up
        assert first.observers == []
