# gui/pin_dialog.py - Interactive startup PIN prompt
"""
PyQt6 dialog that asks the user for a new BitLocker startup PIN.

Two masked fields (PIN and confirmation), Submit and Cancel. Submit runs
the caller-supplied validator; a rejected entry shows the reason inline,
clears both fields and keeps the dialog open. prompt_for_pin() blocks
until the user submits an accepted PIN or cancels.
"""

import logging
import sys
from typing import Callable, Optional

from PyQt6.QtCore import QRegularExpression, Qt
from PyQt6.QtGui import QRegularExpressionValidator
from PyQt6.QtWidgets import (
    QApplication,
    QDialog,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QVBoxLayout,
)

from bitlockerpin.core.constants import Branding
from bitlockerpin.core.limits import Limits
from bitlockerpin.core.logs import mask_pin
from bitlockerpin.core.pin_checker import PinValidationResult
from bitlockerpin.core.policy import PinPolicy

_gui_logger = logging.getLogger("BitLockerPin.gui")

PinValidator = Callable[[str, str], PinValidationResult]


def policy_hint(policy: PinPolicy) -> str:
    """Short description of the PIN rules shown above the input fields."""
    if policy.is_enhanced:
        return (
            f"Choose a PIN of {policy.min_length} to {Limits.PIN_MAX_LENGTH} characters with an uppercase "
            "letter, a lowercase letter, a digit and a symbol. Avoid keyboard patterns, spaces, "
            "repeated groups and your user name."
        )
    return (
        f"Choose a PIN of {policy.min_length} to {Limits.PIN_MAX_LENGTH} digits. Avoid sequences "
        "such as 12345 or 54321 and repeated digits or groups."
    )


class PinDialog(QDialog):
    """Dialog with PIN and confirmation fields."""

    def __init__(self, policy: PinPolicy, validator: PinValidator, parent=None):
        super().__init__(parent)
        self.policy = policy
        self._validator = validator
        self._pin: Optional[str] = None

        self.setWindowTitle(Branding.WINDOW_TITLE)
        self.setModal(True)
        self.setMinimumWidth(420)
        # Launched from SYSTEM onto the user's desktop: keep it in front
        self.setWindowFlag(Qt.WindowType.WindowStaysOnTopHint, True)

        self._init_ui()

    def _init_ui(self):
        layout = QVBoxLayout(self)
        layout.setSpacing(10)

        intro = QLabel(
            "Your organization requires a PIN to start this computer. "
            "You will type it every time Windows starts."
        )
        intro.setWordWrap(True)
        layout.addWidget(intro)

        self.hint_label = QLabel(policy_hint(self.policy))
        self.hint_label.setWordWrap(True)
        self.hint_label.setStyleSheet("color: #666; font-size: 11px;")
        layout.addWidget(self.hint_label)

        self.pin_edit = self._make_pin_field("New PIN")
        layout.addWidget(self.pin_edit)
        self.confirm_edit = self._make_pin_field("Confirm PIN")
        layout.addWidget(self.confirm_edit)

        self.error_label = QLabel("")
        self.error_label.setWordWrap(True)
        self.error_label.setStyleSheet("color: #c0392b;")
        self.error_label.setVisible(False)
        layout.addWidget(self.error_label)

        button_layout = QHBoxLayout()
        button_layout.addStretch()

        self.submit_btn = QPushButton("Submit")
        self.submit_btn.setDefault(True)
        self.submit_btn.clicked.connect(self._on_submit)
        button_layout.addWidget(self.submit_btn)

        self.cancel_btn = QPushButton("Cancel")
        self.cancel_btn.clicked.connect(self.reject)
        button_layout.addWidget(self.cancel_btn)

        layout.addLayout(button_layout)
        self.pin_edit.setFocus()

    def _make_pin_field(self, placeholder: str) -> QLineEdit:
        field = QLineEdit()
        field.setEchoMode(QLineEdit.EchoMode.Password)
        field.setPlaceholderText(placeholder)
        field.setMaxLength(Limits.PIN_MAX_LENGTH)
        if not self.policy.is_enhanced:
            field.setValidator(QRegularExpressionValidator(QRegularExpression(r"[0-9]*"), field))
        return field

    def _on_submit(self):
        pin = self.pin_edit.text()
        confirm = self.confirm_edit.text()

        result = self._validator(pin, confirm)
        if result.is_valid:
            _gui_logger.info(f"PIN accepted: {mask_pin(pin)}")
            self._pin = pin
            self.accept()
            return

        _gui_logger.info(f"PIN rejected: {result.rejection.name if result.rejection else 'unknown'}")
        self.show_error(result.message)
        self.pin_edit.clear()
        self.confirm_edit.clear()
        self.pin_edit.setFocus()

    def show_error(self, message: str):
        self.error_label.setText(message)
        self.error_label.setVisible(bool(message))

    def take_pin(self) -> Optional[str]:
        """Return the accepted PIN once and forget it."""
        pin, self._pin = self._pin, None
        return pin


def _ensure_application() -> QApplication:
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)
    return app


def prompt_for_pin(policy: PinPolicy, validator: PinValidator) -> Optional[str]:
    """
    Show the PIN dialog and wait for the user.

    Returns:
        The accepted PIN, or None if the user cancelled
    """
    _ensure_application()
    dialog = PinDialog(policy, validator)
    accepted = dialog.exec() == QDialog.DialogCode.Accepted
    pin = dialog.take_pin() if accepted else None
    dialog.deleteLater()
    if pin is None:
        _gui_logger.info("PIN prompt cancelled")
    return pin


def show_message(text: str, warning: bool = False) -> None:
    """Modal information or warning box on top of other windows."""
    from PyQt6.QtWidgets import QMessageBox

    _ensure_application()
    box = QMessageBox()
    box.setIcon(QMessageBox.Icon.Warning if warning else QMessageBox.Icon.Information)
    box.setWindowTitle(Branding.WINDOW_TITLE)
    box.setWindowFlag(Qt.WindowType.WindowStaysOnTopHint, True)
    box.setText(text)
    box.exec()
