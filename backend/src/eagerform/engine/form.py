"""Form-level validation coordinator.

FormValidator wires the engine together for one form:

    event -> EventScheduler (debounce/delay)
          -> validate_field: new generation, native check
          -> RulePipeline (+ RemoteRuleExecutor)
          -> settlement under the generation guard
          -> MessageResolver -> FeedbackPresenter -> FeedbackSink

It also handles the form-level operations: full validation, first-error
lookup, submit gating and reset.
"""

import asyncio
import logging
import time

from eagerform.config import ValidatorOptions
from eagerform.constraints import AttributeConstraintAdapter
from eagerform.core.errors import ConfigError
from eagerform.core.types import (
    FeedbackSink,
    Field,
    Form,
    FormEvent,
    NativeConstraintAdapter,
    SubmitControl,
    ValidityKind,
    ViewportHelper,
)
from eagerform.engine.feedback import FeedbackPresenter
from eagerform.engine.scheduler import EventScheduler
from eagerform.engine.signals import (
    AFTER_VALIDATE,
    BEFORE_VALIDATE,
    VALIDATION_COMPLETE,
    SignalBus,
)
from eagerform.engine.state import FieldState, FieldStateMachine
from eagerform.messages.catalog import MessageCatalog, default_catalog
from eagerform.messages.resolver import MessageResolver
from eagerform.rules.pipeline import RuleContext, RuleOutcome, RulePipeline
from eagerform.rules.registry import RuleRegistry, default_registry
from eagerform.rules.remote import RemoteRuleExecutor
from eagerform.sinks import MemoryFeedbackSink

logger = logging.getLogger(__name__)

# How long a highlight blocks further highlights, in seconds
FOCUS_THROTTLE = 0.5


class FormValidator:
    """Validates a form.

    Example:
        validator = FormValidator(form, ValidatorOptions(locale="en"))
        validator.dispatch(FormEvent("change", form.find("email")))
        await validator.wait_settled()
        validator.state(form.find("email")).status
    """

    version = "1.0.2"

    # One validator per form handle, see attach_to()
    _instances: dict[str, "FormValidator"] = {}

    def __init__(
        self,
        form: Form,
        options: ValidatorOptions | None = None,
        *,
        native: NativeConstraintAdapter | None = None,
        sink: FeedbackSink | None = None,
        submit: SubmitControl | None = None,
        viewport: ViewportHelper | None = None,
        registry: RuleRegistry | None = None,
        catalog: MessageCatalog | None = None,
        http_client=None,
    ):
        """Initialize the validator and attach it to the form.

        Args:
            form: The form to validate
            options: Validator options (defaults when omitted)
            native: Native constraint adapter (attribute adapter when omitted)
            sink: Feedback sink (in-memory sink when omitted)
            submit: Submit control, if the form has one
            viewport: Scroll/focus helper, if available
            registry: Rule registry (default registry when omitted)
            catalog: Message catalog (shared default catalog when omitted)
            http_client: httpx.AsyncClient used by remote rules

        Raises:
            ConfigError: If the configured locale is not loaded
        """
        self.form = form
        self.options = options or ValidatorOptions()
        self.catalog = catalog or default_catalog()

        if not self.catalog.has_locale(self.options.locale):
            raise ConfigError(f"The locale {self.options.locale} is not loaded.")

        self.native = native or AttributeConstraintAdapter(form)
        self.sink = sink or MemoryFeedbackSink()
        self.submit_control = submit
        self.viewport = viewport
        self.registry = registry or default_registry

        prefix = self.options.attribute_prefix
        self.resolver = MessageResolver(
            self.catalog, self.options.locale, prefix, fallback=self.native.fallback_message
        )
        self.states = FieldStateMachine()
        self.feedback = FeedbackPresenter(form, self.sink, self.options)
        self.signals = SignalBus(form)
        self.pipeline = RulePipeline(self.registry, self.resolver, prefix)
        self.remote = RemoteRuleExecutor(
            self.resolver,
            client=http_client,
            timeout=self.options.remote_timeout,
            on_busy=self._on_busy,
        )
        self.scheduler = EventScheduler(self.options, self.validate_field)

        self.validated = False
        self.submit_enabled = True
        self.attached = False
        self._tasks: set[asyncio.Task] = set()
        self._focus_until = 0.0

        self.attach()

    @classmethod
    def attach_to(cls, form: Form, **kwargs) -> "FormValidator":
        """Return the form's validator, creating it on first use."""
        existing = cls._instances.get(form.id)
        if existing is not None:
            return existing
        instance = cls(form, **kwargs)
        cls._instances[form.id] = instance
        return instance

    # =========================================================================
    # Event handling
    # =========================================================================

    def attach(self) -> None:
        """Start handling events delivered through ``dispatch``."""
        self.attached = True

    def detach(self) -> None:
        """Stop handling events."""
        self.attached = False

    def dispatch(self, event: FormEvent) -> None:
        """Deliver an event to the form.

        Submit and reset events are handled when captured; other events go to
        ``handle_event``.
        """
        if not self.attached:
            return
        if event.type == "submit":
            if self.options.capture_submit:
                self.handle_submit(event)
        elif event.type == "reset":
            if self.options.capture_reset:
                self.handle_reset(event)
        else:
            self.handle_event(event)

    def handle_event(self, event: FormEvent) -> None:
        """Handle a trigger event (blur, change, keyup, ...) on a field."""
        if event.type not in self.options.revalidate or event.target is None:
            return

        if self.signals.emit(BEFORE_VALIDATE, event.target).cancelled:
            return

        # Don't validate on a tab key press that only moves focus
        if self.options.no_trigger_on_tab and event.key == "Tab":
            return

        # On a form change, enable the submit control back
        if event.type == "change" and self.options.disable_submit:
            if self.is_valid():
                self.enable_submit()

        self.scheduler.schedule(event)
        self.signals.emit(AFTER_VALIDATE, event.target)

    # =========================================================================
    # Field validation
    # =========================================================================

    def validate(self) -> None:
        """Validate every field in document order, bypassing scheduler timing."""
        for field in self.form:
            if field.container:
                continue
            self.validate_field(field)

    def validate_field(self, field: Field) -> int | None:
        """Start a validation pass for a field.

        Custom rules are launched as tasks and not awaited.

        Returns:
            The pass generation, or None if the field doesn't take part
        """
        if not self._participates(field):
            return None

        generation = self.states.begin(field)
        report = self.native.check(field)

        violated = [k for k in report.violated_kinds if k != ValidityKind.CUSTOM_ERROR]
        if violated:
            # The last enumerated kind wins
            kind = violated[-1]
            message = self.resolver.resolve(kind, field)
            self.states.settle_invalid(field, generation, kind, message)
            self.feedback.show_error(field, message)
            return generation

        has_custom_error = self.states.has_custom_error(field)
        if not has_custom_error:
            self.feedback.clear_error(field)

        tasks = self.pipeline.launch(
            field,
            self._rule_context,
            lambda outcome: self._settle(field, generation, outcome),
        )

        if not tasks:
            if has_custom_error:
                message = self.states.snapshot(field).custom_message
                self.states.settle_invalid(
                    field, generation, ValidityKind.CUSTOM_ERROR, message
                )
            else:
                self.states.settle_valid(field, generation)

        for task in tasks:
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        return generation

    async def wait_settled(self) -> None:
        """Wait until every launched rule task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def state(self, field: Field) -> FieldState:
        """Snapshot of a field's validation state."""
        return self.states.snapshot(field)

    def _settle(self, field: Field, generation: int, outcome: RuleOutcome) -> None:
        if outcome.passed:
            if self.states.settle_valid(field, generation):
                self.feedback.clear_error(field)
        elif self.states.settle_invalid(field, generation, outcome.kind, outcome.message):
            self.feedback.show_error(field, outcome.message)

    def _rule_context(self, name: str, attribute: str) -> RuleContext:
        return RuleContext(
            name=name,
            attribute=attribute,
            form=self.form,
            resolver=self.resolver,
            remote=self.remote,
            dispatch=self.dispatch,
        )

    def _participates(self, field: Field) -> bool:
        if field.container or field.is_button:
            return False
        if self._suppressed(field):
            return False
        if not self.options.validate_without_name and not field.name:
            return False
        return True

    def _suppressed(self, field: Field) -> bool:
        # Any value other than "false" (even an empty one) suppresses
        value = field.get_attribute(self.options.suppress_attribute)
        return value is not None and value != "false"

    def _on_busy(self, field: Field, busy: bool) -> None:
        if self.options.show_busy_state:
            self.feedback.set_busy(field, busy)

    # =========================================================================
    # Form-level operations
    # =========================================================================

    def get_first_error(self) -> Field | None:
        """The first field in document order failing native or custom validation."""
        for field in self.form:
            if not self._participates(field):
                continue
            if self._failing(field):
                return field
        return None

    def is_valid(self) -> bool:
        return self.get_first_error() is None

    def _failing(self, field: Field) -> bool:
        return not self.native.check(field).valid or self.states.has_custom_error(field)

    def handle_submit(self, event: FormEvent | None = None) -> bool:
        """Validate the form on submission.

        Returns:
            True if the submission may proceed
        """
        event = event or FormEvent("submit")
        self.validate()

        self.validated = True
        if self.options.show_success_state:
            self.feedback.set_form_validated(True)

        first_error = self.get_first_error()
        if first_error is not None:
            event.prevent_default()
            if self.options.disable_submit:
                self.disable_submit()
            self.highlight_error(first_error)

        self.complete()
        return not event.default_prevented

    def handle_reset(self, event: FormEvent | None = None) -> None:
        self.restore_state()

    def restore_state(self) -> None:
        """Remove all validation state and feedback, keeping field values."""
        self.validated = False
        self.feedback.set_form_validated(False)

        if self.options.disable_submit:
            self.enable_submit()

        self.scheduler.cancel()
        self.remote.abort_all()
        for field in self.form:
            self.states.reset(field)
            self.feedback.clear_validation(field)

    def highlight_error(self, field: Field) -> None:
        """Bring the field into view and focus it."""
        now = time.monotonic()
        if now < self._focus_until or self.viewport is None:
            return

        if self.options.auto_scroll:
            self._focus_until = now + FOCUS_THROTTLE
            self.viewport.bring_into_view(field, self.options.offset_focus)

        if self.options.focus_first_error:
            self.viewport.focus(field)

    def enable_submit(self) -> None:
        self.submit_enabled = True
        if self.submit_control is not None:
            self.submit_control.enable()

    def disable_submit(self) -> None:
        self.submit_enabled = False
        if self.submit_control is not None:
            self.submit_control.disable()

    def complete(self) -> None:
        """Emit the completion signal after a submit has been handled."""
        self.signals.emit(VALIDATION_COMPLETE)

    # =========================================================================
    # Messages
    # =========================================================================

    def add_message(self, key: str, message: str) -> "FormValidator":
        """Add or replace a message in the current locale."""
        self.catalog.add_message(self.options.locale, key, message)
        return self

    def set_messages(self, messages: dict[str, str]) -> "FormValidator":
        """Merge messages into the current locale."""
        self.catalog.set_messages(self.options.locale, messages)
        return self

    # =========================================================================
    # Teardown
    # =========================================================================

    def destroy(self, restore: bool = True) -> None:
        """Detach from the form, optionally restoring its baseline state."""
        if restore:
            self.restore_state()
        self.detach()
        self.scheduler.cancel()
        self.remote.abort_all()
        if self._instances.get(self.form.id) is self:
            del self._instances[self.form.id]

    async def aclose(self) -> None:
        """Destroy the validator and close the remote client."""
        self.destroy(restore=False)
        await self.remote.aclose()
