"""Translates field state changes into feedback sink calls.

State classes go to the field, its logical parent and same-named sibling
controls (radio/checkbox groups); messages go to the sink's feedback slot for
the field.
"""

from eagerform.config import ValidatorOptions
from eagerform.core.types import FeedbackSink, Field, Form


class FeedbackPresenter:
    """Applies error, success and baseline feedback for a form."""

    def __init__(self, form: Form, sink: FeedbackSink, options: ValidatorOptions):
        self.form = form
        self.sink = sink
        self.options = options

    @property
    def classes(self):
        return self.options.classes

    def show_error(self, field: Field, message: str) -> None:
        self.sink.toggle_classes(
            field.id, add=(self.classes.input_invalid,), remove=(self.classes.input_valid,)
        )

        if field.parent:
            self.sink.toggle_classes(
                field.parent,
                add=(self.classes.parent_invalid,),
                remove=(self.classes.parent_valid,),
            )
            siblings = self.form.siblings(field)
            if len(siblings) > 1:
                for sibling in siblings:
                    self.sink.toggle_classes(
                        sibling.id,
                        add=(self.classes.input_invalid,),
                        remove=(self.classes.input_valid,),
                    )

        self.sink.render(field, message)

    def clear_error(self, field: Field) -> None:
        success = self.options.show_success_state
        self.sink.toggle_classes(field.id, remove=(self.classes.input_invalid,))

        if field.parent:
            self.sink.toggle_classes(
                field.parent,
                add=(self.classes.parent_valid,) if success else (),
                remove=(self.classes.parent_invalid,),
            )
            siblings = self.form.siblings(field)
            if len(siblings) > 1:
                for sibling in siblings:
                    self.sink.toggle_classes(
                        sibling.id,
                        add=(self.classes.input_valid,) if success else (),
                        remove=(self.classes.input_invalid,),
                    )

        self.sink.clear_feedback(field)

        if success:
            self.sink.toggle_classes(field.id, add=(self.classes.input_valid,))

    def clear_validation(self, field: Field) -> None:
        """Remove every validation class and message from a field."""
        self.sink.toggle_classes(
            field.id, remove=(self.classes.input_invalid, self.classes.input_valid)
        )
        if field.parent:
            self.sink.toggle_classes(
                field.parent,
                remove=(self.classes.parent_invalid, self.classes.parent_valid),
            )
        self.sink.clear_feedback(field)

    def set_busy(self, field: Field, busy: bool) -> None:
        if not field.parent:
            return
        if busy:
            self.sink.toggle_classes(field.parent, add=(self.classes.parent_busy,))
        else:
            self.sink.toggle_classes(field.parent, remove=(self.classes.parent_busy,))

    def set_form_validated(self, validated: bool) -> None:
        if validated:
            self.sink.toggle_classes(self.form.id, add=(self.classes.form_validated,))
        else:
            self.sink.toggle_classes(self.form.id, remove=(self.classes.form_validated,))
