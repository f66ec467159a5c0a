"""Tests for the FormValidator coordinator.

Tests cover:
- Field validation with native constraints and custom rules
- Generation guard against out-of-order rule settlements
- Remote rules (coalescing, transport failures, busy state)
- Event handling (revalidate triggers, Tab suppression, signals)
- Form-level operations (first error, submit gating, reset, teardown)
"""

import asyncio

import httpx
import pytest

from eagerform.config import ValidatorOptions
from eagerform.core.errors import ConfigError, RuleRejected
from eagerform.core.types import Field, FieldStatus, Form, FormEvent, ValidityKind
from eagerform.engine import AFTER_VALIDATE, BEFORE_VALIDATE, VALIDATION_COMPLETE, FormValidator
from eagerform.messages import MessageCatalog
from eagerform.rules import create_default_registry
from eagerform.sinks import MemoryFeedbackSink, MemorySubmitControl, MemoryViewport


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clear_instances():
    """Forget validators attached through attach_to before and after each test."""
    FormValidator._instances.clear()
    yield
    FormValidator._instances.clear()


@pytest.fixture
def registry():
    return create_default_registry()


@pytest.fixture
def catalog():
    return MessageCatalog.default()


@pytest.fixture
def sink():
    return MemoryFeedbackSink()


@pytest.fixture
def submit():
    return MemorySubmitControl()


@pytest.fixture
def viewport():
    return MemoryViewport()


@pytest.fixture
def make_validator(registry, catalog, sink, submit, viewport):
    """Create a FormValidator wired to in-memory collaborators."""

    def factory(form, options=None, **kwargs):
        kwargs.setdefault("registry", registry)
        kwargs.setdefault("catalog", catalog)
        kwargs.setdefault("sink", sink)
        kwargs.setdefault("submit", submit)
        kwargs.setdefault("viewport", viewport)
        return FormValidator(form, options or ValidatorOptions(), **kwargs)

    return factory


def signup_form():
    return Form(
        [
            Field(name="name", attributes={"required": ""}, parent="name-group"),
            Field(name="email", type="email", value="ann@example.com"),
            Field(type="submit", name="go"),
        ],
        name="signup",
    )


# =============================================================================
# Field Validation Tests
# =============================================================================


class TestFieldValidation:
    def test_native_failure(self, make_validator, sink):
        form = signup_form()
        name = form.find("name")
        validator = make_validator(form)

        validator.validate_field(name)

        state = validator.state(name)
        assert state.status == FieldStatus.INVALID
        assert state.kind == ValidityKind.VALUE_MISSING
        assert state.message == "Please fill out this field."
        assert sink.message_for(name) == "Please fill out this field."
        assert "is-invalid" in sink.classes_of(name.id)
        assert "has-invalid-input" in sink.classes_of("name-group")

    def test_valid_field_shows_success(self, make_validator, sink):
        form = signup_form()
        email = form.find("email")
        validator = make_validator(form)

        validator.validate_field(email)

        assert validator.state(email).status == FieldStatus.VALID
        assert "is-valid" in sink.classes_of(email.id)

    def test_success_state_disabled(self, make_validator, sink):
        form = signup_form()
        email = form.find("email")
        validator = make_validator(form, ValidatorOptions(show_success_state=False))

        validator.validate_field(email)
        assert "is-valid" not in sink.classes_of(email.id)

    def test_fixing_a_field_clears_feedback(self, make_validator, sink):
        form = signup_form()
        name = form.find("name")
        validator = make_validator(form)

        validator.validate_field(name)
        name.value = "Ann"
        validator.validate_field(name)

        assert validator.state(name).status == FieldStatus.VALID
        assert sink.message_for(name) == ""
        assert "is-invalid" not in sink.classes_of(name.id)
        assert "has-valid-input" in sink.classes_of("name-group")

    def test_last_native_kind_wins(self, make_validator):
        field = Field(name="n", type="number", value="10.5", attributes={"max": "5"})
        validator = make_validator(Form([field]))

        validator.validate_field(field)
        assert validator.state(field).kind == ValidityKind.STEP_MISMATCH

    def test_buttons_and_suppressed_fields_skipped(self, make_validator):
        button = Field(type="submit", name="go")
        suppressed = Field(name="s", attributes={"required": "", "novalidate": ""})
        validator = make_validator(Form([button, suppressed]))

        assert validator.validate_field(button) is None
        assert validator.validate_field(suppressed) is None
        assert validator.state(suppressed).status == FieldStatus.IDLE

    def test_unnamed_fields_skipped_unless_configured(self, make_validator):
        field = Field(attributes={"required": ""})
        assert make_validator(Form([field])).validate_field(field) is None

        validator = make_validator(Form([field]), ValidatorOptions(validate_without_name=True))
        assert validator.validate_field(field) == 1

    def test_idempotent_validate(self, make_validator, sink):
        form = signup_form()
        validator = make_validator(form)

        validator.validate()
        first = [(f.id, validator.state(f).status, validator.state(f).message) for f in form]
        first_messages = dict(sink.messages)

        validator.validate()
        second = [(f.id, validator.state(f).status, validator.state(f).message) for f in form]

        assert first == second
        assert sink.messages == first_messages

    def test_radio_group_feedback(self, make_validator, sink):
        small = Field(name="size", type="radio", value="s", parent="sizes", attributes={"required": ""})
        large = Field(name="size", type="radio", value="l", parent="sizes")
        validator = make_validator(Form([small, large]))

        validator.validate()

        assert validator.state(large).kind == ValidityKind.VALUE_MISSING
        assert sink.message_for(small) == "Please select one of these options."
        assert "is-invalid" in sink.classes_of(small.id)
        assert "is-invalid" in sink.classes_of(large.id)
        assert "has-invalid-input" in sink.classes_of("sizes")

    def test_unusual_values_settle_and_later_fields_validate(self, make_validator):
        wide = Field(name="wide", type="number", value="2e29", attributes={"max": "1e29"})
        offset = Field(
            name="when",
            type="datetime-local",
            value="2024-01-01T10:00:00+00:00",
            attributes={"min": "2024-01-01T00:00"},
        )
        name = Field(name="name", attributes={"required": ""})
        validator = make_validator(Form([wide, offset, name]))
        completed = []
        validator.signals.connect(VALIDATION_COMPLETE, completed.append)

        assert not validator.handle_submit()

        assert validator.state(wide).kind == ValidityKind.RANGE_OVERFLOW
        assert validator.state(wide).message == (
            "Please enter a value that is no more than 100,000,000,000,000,000,000,000,000,000."
        )
        assert validator.state(offset).kind == ValidityKind.BAD_INPUT
        assert validator.state(name).kind == ValidityKind.VALUE_MISSING
        assert len(completed) == 1

    def test_locale_message_override(self, make_validator):
        form = signup_form()
        name = form.find("name")
        validator = make_validator(form)

        validator.add_message("valueMissing", "Required!")
        validator.validate_field(name)

        assert validator.state(name).message == "Required!"


# =============================================================================
# Custom Rule Tests
# =============================================================================


class TestCustomRules:
    @pytest.mark.asyncio
    async def test_rule_failure(self, make_validator, registry, sink):
        @registry.rule("even")
        async def even(field, value, ctx):
            if int(field.value) % 2:
                raise RuleRejected("Please enter an even number")

        field = Field(name="n", type="number", value="3", attributes={"data-eager-even": ""})
        validator = make_validator(Form([field]))

        validator.validate_field(field)
        assert validator.state(field).status == FieldStatus.CHECKING

        await validator.wait_settled()

        state = validator.state(field)
        assert state.status == FieldStatus.INVALID
        assert state.kind == ValidityKind.CUSTOM_ERROR
        assert state.message == "Please enter an even number"
        assert sink.message_for(field) == "Please enter an even number"
        assert validator.get_first_error() is field

    @pytest.mark.asyncio
    async def test_rule_pass_clears_custom_error(self, make_validator, registry, sink):
        @registry.rule("available")
        async def available(field, value, ctx):
            if field.value == "taken":
                raise RuleRejected("Taken")

        field = Field(name="u", value="taken", attributes={"data-eager-available": ""})
        validator = make_validator(Form([field]))

        validator.validate_field(field)
        await validator.wait_settled()
        assert not validator.is_valid()

        field.value = "free"
        validator.validate_field(field)
        # The previous custom message stays while the rule runs
        assert sink.message_for(field) == "Taken"

        await validator.wait_settled()
        assert validator.state(field).status == FieldStatus.VALID
        assert sink.message_for(field) == ""
        assert validator.is_valid()

    @pytest.mark.asyncio
    async def test_stale_settlement_discarded(self, make_validator, registry):
        gates = []

        @registry.rule("slow")
        async def slow(field, value, ctx):
            seen = field.value
            gate = asyncio.Event()
            gates.append(gate)
            await gate.wait()
            if seen == "bad":
                raise RuleRejected("Bad value")

        field = Field(name="f", value="bad", attributes={"data-eager-slow": ""})
        validator = make_validator(Form([field]))

        validator.validate_field(field)
        await asyncio.sleep(0)
        field.value = "good"
        validator.validate_field(field)
        await asyncio.sleep(0)

        # The newer pass settles first, then the stale one
        gates[1].set()
        await asyncio.sleep(0)
        gates[0].set()
        await validator.wait_settled()

        state = validator.state(field)
        assert state.status == FieldStatus.VALID
        assert state.generation == 2
        assert not state.has_custom_error

    @pytest.mark.asyncio
    async def test_match_and_reference(self, make_validator):
        password = Field(name="password", value="secret", attributes={"data-eager-reference": "confirm"})
        confirm = Field(name="confirm", value="other", attributes={"data-eager-match": "password"})
        validator = make_validator(Form([password, confirm]))

        validator.validate_field(confirm)
        await validator.wait_settled()
        assert validator.state(confirm).message == "The values don't match"

        # Editing the original re-validates the confirmation
        password.value = "other"
        validator.dispatch(FormEvent("change", password))
        await validator.wait_settled()

        assert validator.state(confirm).status == FieldStatus.VALID
        assert validator.is_valid()


# =============================================================================
# Remote Rule Tests
# =============================================================================


class TestRemoteRules:
    @staticmethod
    def remote_field(value="alice"):
        return Field(
            name="username",
            value=value,
            parent="username-group",
            attributes={"data-eager-remote": "https://api.test/check?u={value}"},
        )

    @pytest.mark.asyncio
    async def test_remote_rejection(self, make_validator):
        field = self.remote_field()
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(409)))
        validator = make_validator(Form([field]), http_client=client)

        validator.validate_field(field)
        await validator.wait_settled()

        state = validator.state(field)
        assert state.kind == ValidityKind.CUSTOM_ERROR
        assert state.message == "The field doesn't pass remote validation."

    @pytest.mark.asyncio
    async def test_remote_coalescing(self, make_validator):
        release = asyncio.Event()
        seen = []

        async def handler(request):
            seen.append(request.url.params["u"])
            if request.url.params["u"] == "first":
                await release.wait()
                return httpx.Response(409)
            return httpx.Response(200)

        field = self.remote_field("first")
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        validator = make_validator(Form([field]), http_client=client)

        validator.validate_field(field)
        while not seen:
            await asyncio.sleep(0)

        field.value = "second"
        validator.validate_field(field)
        await validator.wait_settled()
        release.set()

        assert seen == ["first", "second"]
        state = validator.state(field)
        assert state.status == FieldStatus.VALID
        assert state.generation == 2

    @pytest.mark.asyncio
    async def test_network_error(self, make_validator, sink):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        field = self.remote_field()
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        validator = make_validator(Form([field]), http_client=client)

        validator.validate_field(field)
        await validator.wait_settled()

        state = validator.state(field)
        assert state.status == FieldStatus.INVALID
        assert state.kind == ValidityKind.NETWORK_ERROR
        assert state.message == "The field could not be validated, please try again."
        assert sink.message_for(field) == state.message
        assert not validator.is_valid()

    @pytest.mark.asyncio
    async def test_busy_class_while_in_flight(self, make_validator, sink):
        release = asyncio.Event()
        started = asyncio.Event()

        async def handler(request):
            started.set()
            await release.wait()
            return httpx.Response(200)

        field = self.remote_field()
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        validator = make_validator(Form([field]), http_client=client)

        validator.validate_field(field)
        await started.wait()
        assert "is-validating" in sink.classes_of("username-group")

        release.set()
        await validator.wait_settled()
        assert "is-validating" not in sink.classes_of("username-group")


# =============================================================================
# Event Handling Tests
# =============================================================================


class TestEventHandling:
    def test_change_validates_immediately(self, make_validator):
        form = signup_form()
        name = form.find("name")
        validator = make_validator(form)

        validator.dispatch(FormEvent("change", name))
        assert validator.state(name).status == FieldStatus.INVALID

    def test_untracked_event_ignored(self, make_validator):
        form = signup_form()
        name = form.find("name")
        validator = make_validator(form)

        validator.dispatch(FormEvent("input", name))
        assert validator.state(name).status == FieldStatus.IDLE

    def test_tab_key_ignored(self, make_validator):
        form = signup_form()
        name = form.find("name")
        validator = make_validator(form)

        validator.dispatch(FormEvent("keyup", name, key="Tab"))
        assert validator.state(name).status == FieldStatus.IDLE

        validator.dispatch(FormEvent("keyup", name, key="a"))
        assert validator.state(name).status == FieldStatus.INVALID

    def test_before_validate_can_cancel(self, make_validator):
        form = signup_form()
        name = form.find("name")
        validator = make_validator(form)
        validator.signals.connect(BEFORE_VALIDATE, lambda signal: signal.cancel())

        validator.dispatch(FormEvent("change", name))
        assert validator.state(name).status == FieldStatus.IDLE

    def test_after_validate_signal(self, make_validator):
        form = signup_form()
        name = form.find("name")
        validator = make_validator(form)
        after = []
        validator.signals.connect(AFTER_VALIDATE, after.append)

        validator.dispatch(FormEvent("change", name))
        validator.dispatch(FormEvent("keyup", name, key="a"))
        assert [signal.target for signal in after] == [name, name]

        validator.dispatch(FormEvent("keyup", name, key="Tab"))
        validator.dispatch(FormEvent("input", name))
        assert len(after) == 2

        validator.signals.connect(BEFORE_VALIDATE, lambda signal: signal.cancel())
        validator.dispatch(FormEvent("change", name))
        assert len(after) == 2

    def test_detached_validator_ignores_events(self, make_validator):
        form = signup_form()
        name = form.find("name")
        validator = make_validator(form)
        validator.detach()

        validator.dispatch(FormEvent("change", name))
        assert validator.state(name).status == FieldStatus.IDLE

    @pytest.mark.asyncio
    async def test_blur_is_debounced(self, make_validator):
        form = signup_form()
        name = form.find("name")
        validator = make_validator(form)

        validator.dispatch(FormEvent("blur", name))
        assert validator.state(name).status == FieldStatus.IDLE
        assert validator.scheduler.pending(name) == 1

        await asyncio.sleep(0.2)
        assert validator.state(name).status == FieldStatus.INVALID


# =============================================================================
# Form-Level Tests
# =============================================================================


class TestFirstError:
    def test_first_in_document_order(self, make_validator):
        a = Field(name="a", value="ok")
        b = Field(name="b", attributes={"required": ""})
        c = Field(name="c", attributes={"required": ""})
        validator = make_validator(Form([a, b, c]))

        assert validator.get_first_error() is b
        assert not validator.is_valid()

    def test_skips_suppressed_and_unnamed(self, make_validator):
        unnamed = Field(attributes={"required": ""})
        suppressed = Field(name="s", attributes={"required": "", "novalidate": ""})
        email = Field(name="email", type="email", value="bad")
        form = Form([unnamed, suppressed, email])

        assert make_validator(form).get_first_error() is email

        validator = make_validator(form, ValidatorOptions(validate_without_name=True))
        assert validator.get_first_error() is unnamed

    def test_suppress_false_still_validated(self, make_validator):
        field = Field(name="s", attributes={"required": "", "novalidate": "false"})
        assert make_validator(Form([field])).get_first_error() is field

    def test_custom_suppress_attribute(self, make_validator):
        field = Field(name="s", attributes={"required": "", "data-skip": ""})
        options = ValidatorOptions(suppress_attribute="data-skip")
        assert make_validator(Form([field]), options).is_valid()


class TestSubmit:
    def test_invalid_submit_is_gated(self, make_validator, sink, submit, viewport):
        form = signup_form()
        name = form.find("name")
        validator = make_validator(form)
        completed = []
        validator.signals.connect(VALIDATION_COMPLETE, completed.append)

        event = FormEvent("submit")
        validator.dispatch(event)

        assert event.default_prevented
        assert validator.validated
        assert "was-validated" in sink.classes_of(form.id)
        assert not submit.enabled
        assert not validator.submit_enabled
        assert viewport.scrolled == [(name.id, 50)]
        assert viewport.focused == [name.id]
        assert len(completed) == 1

    def test_valid_submit_proceeds(self, make_validator, submit, viewport):
        form = signup_form()
        form.find("name").value = "Ann"
        validator = make_validator(form)
        completed = []
        validator.signals.connect(VALIDATION_COMPLETE, completed.append)

        assert validator.handle_submit(FormEvent("submit"))
        assert submit.enabled
        assert viewport.focused == []
        assert len(completed) == 1

    def test_highlight_is_throttled(self, make_validator, viewport):
        validator = make_validator(signup_form())

        validator.handle_submit()
        validator.handle_submit()

        assert len(viewport.scrolled) == 1

    def test_submit_not_captured(self, make_validator):
        form = signup_form()
        validator = make_validator(form, ValidatorOptions(capture_submit=False))

        event = FormEvent("submit")
        validator.dispatch(event)
        assert not event.default_prevented
        assert not validator.validated

    def test_change_reenables_submit(self, make_validator, submit):
        form = signup_form()
        name = form.find("name")
        validator = make_validator(form)

        validator.handle_submit()
        assert not submit.enabled

        name.value = "Ann"
        validator.dispatch(FormEvent("change", name))
        assert submit.enabled
        assert submit.history == ["disable", "enable"]

    def test_change_keeps_submit_disabled_while_invalid(self, make_validator, submit):
        form = signup_form()
        email = form.find("email")
        validator = make_validator(form)

        validator.handle_submit()
        validator.dispatch(FormEvent("change", email))
        assert not submit.enabled


class TestReset:
    def test_reset_restores_baseline(self, make_validator, sink, submit):
        form = signup_form()
        email = form.find("email")
        email.value = "bad"
        validator = make_validator(form)

        validator.handle_submit()
        validator.dispatch(FormEvent("reset"))

        assert not validator.validated
        assert "was-validated" not in sink.classes_of(form.id)
        assert submit.enabled
        for field in form:
            assert validator.state(field).status == FieldStatus.IDLE
            assert sink.message_for(field) == ""
            assert "is-invalid" not in sink.classes_of(field.id)
        assert email.value == "bad"

    @pytest.mark.asyncio
    async def test_reset_discards_in_flight_rules(self, make_validator, registry):
        gate = asyncio.Event()

        @registry.rule("slow")
        async def slow(field, value, ctx):
            await gate.wait()
            raise RuleRejected("Late")

        field = Field(name="f", attributes={"data-eager-slow": ""})
        validator = make_validator(Form([field]))

        validator.validate_field(field)
        await asyncio.sleep(0)
        validator.restore_state()
        gate.set()
        await validator.wait_settled()

        assert validator.state(field).status == FieldStatus.IDLE
        assert validator.is_valid()

    @pytest.mark.asyncio
    async def test_reset_cancels_timers(self, make_validator):
        form = signup_form()
        name = form.find("name")
        validator = make_validator(form)

        validator.dispatch(FormEvent("blur", name))
        validator.dispatch(FormEvent("reset"))
        await asyncio.sleep(0.15)

        assert validator.state(name).status == FieldStatus.IDLE


# =============================================================================
# Lifecycle Tests
# =============================================================================


class TestLifecycle:
    def test_unknown_locale(self, catalog):
        with pytest.raises(ConfigError, match="The locale xx is not loaded."):
            FormValidator(signup_form(), ValidatorOptions(locale="xx"), catalog=catalog)

    def test_attach_to_reuses_instance(self, catalog):
        form = signup_form()
        first = FormValidator.attach_to(form, catalog=catalog)
        assert FormValidator.attach_to(form) is first

        first.destroy()
        assert FormValidator.attach_to(form, catalog=catalog) is not first

    def test_destroy_restores_and_detaches(self, make_validator, sink):
        form = signup_form()
        name = form.find("name")
        validator = make_validator(form)

        validator.validate_field(name)
        validator.destroy()

        assert sink.message_for(name) == ""
        validator.dispatch(FormEvent("change", name))
        assert validator.state(name).status == FieldStatus.IDLE

    @pytest.mark.asyncio
    async def test_aclose(self, make_validator):
        validator = make_validator(signup_form())
        await validator.aclose()
        assert not validator.attached
