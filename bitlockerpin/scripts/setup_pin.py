#!/usr/bin/env python3
"""
Interactive BitLocker startup PIN setup.

Flow:
    1. take the run guard (exit 0 quietly if another setup holds it)
    2. skip if the volume already has a TPM+PIN protector
    3. read the PIN policy, prompt until an acceptable PIN is entered
    4. add the TPM+PIN protector

The guard is released on every path. The PIN only lives inside
run_setup() and is never logged.

Exit codes:
    0  PIN set, already present, or another setup is running
    1  cancelled, status query failed, or the protector could not be added

Usage:
    bitlockerpin-setup [--mount-point C:]
"""

import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

from bitlockerpin.core.bitlocker import VolumeStatus, get_volume_status, install_tpm_pin_protector
from bitlockerpin.core.constants import ExitCodes, FileNames
from bitlockerpin.core.errors import (
    AlreadyRunning,
    BitLockerPinError,
    InstallationFailure,
    QueryFailure,
    UserCancelled,
)
from bitlockerpin.core.logs import create_exception_hook
from bitlockerpin.core.pin_checker import PinValidationResult, validate_entry
from bitlockerpin.core.platform import current_account_name, is_admin
from bitlockerpin.core.policy import PinPolicy, read_policy
from bitlockerpin.core.single_instance import SingleInstanceGuard
from bitlockerpin.scripts.common import build_parser, prepare

_setup_logger = logging.getLogger("BitLockerPin.setup")

PromptFunc = Callable[[PinPolicy, Callable[[str, str], PinValidationResult]], Optional[str]]
NotifyFunc = Callable[..., None]

MSG_SUCCESS = "Your startup PIN has been set. You will be asked for it the next time this computer starts."
MSG_INSTALL_FAILED = "The startup PIN could not be set. Please contact your IT support."


def _notify_nothing(text: str, warning: bool = False) -> None:
    return None


def _set_pin(
    mount_point: str,
    prompt: PromptFunc,
    notify: NotifyFunc,
    status_provider: Callable[[str], VolumeStatus],
    installer: Callable[[str, str], None],
    policy_reader: Callable[[], PinPolicy],
    account_name: str,
) -> None:
    status = status_provider(mount_point)
    if status.has_tpm_pin:
        if status.fully_encrypted:
            _setup_logger.info(f"{mount_point} already has a TPM+PIN protector, nothing to do")
        else:
            # Compliance stays NoPin until Windows finishes encrypting
            _setup_logger.warning(
                f"{mount_point} already has a TPM+PIN protector but is not fully encrypted "
                f"(protection_on={status.protection_on}, encrypted={status.encryption_percentage}%), "
                "nothing to do"
            )
        return

    policy = policy_reader()

    def validator(pin: str, confirm: str) -> PinValidationResult:
        return validate_entry(pin, confirm, policy, account_name)

    pin = prompt(policy, validator)
    if pin is None:
        raise UserCancelled("User cancelled the PIN prompt")

    installer(mount_point, pin)
    _setup_logger.info(f"Startup PIN set on {mount_point}")
    notify(MSG_SUCCESS)


def run_setup(
    mount_point: str,
    marker_path: Path,
    prompt: PromptFunc,
    notify: NotifyFunc = _notify_nothing,
    status_provider: Callable[[str], VolumeStatus] = get_volume_status,
    installer: Callable[[str, str], None] = install_tpm_pin_protector,
    policy_reader: Callable[[], PinPolicy] = read_policy,
    account_name: Optional[str] = None,
) -> int:
    """
    Run one guarded PIN setup attempt.

    Returns:
        ExitCodes.SUCCESS or ExitCodes.FAILURE
    """
    if account_name is None:
        account_name = current_account_name()

    try:
        with SingleInstanceGuard(marker_path):
            _set_pin(mount_point, prompt, notify, status_provider, installer, policy_reader, account_name)
    except AlreadyRunning as e:
        _setup_logger.info(f"Another PIN setup is running, exiting: {e}")
        return ExitCodes.SUCCESS
    except UserCancelled as e:
        _setup_logger.warning(str(e))
        return ExitCodes.FAILURE
    except QueryFailure as e:
        _setup_logger.error(f"Cannot read BitLocker status: {e}")
        return ExitCodes.FAILURE
    except InstallationFailure as e:
        _setup_logger.warning(f"Protector installation failed: {e}")
        notify(MSG_INSTALL_FAILED, warning=True)
        return ExitCodes.FAILURE
    except BitLockerPinError as e:
        _setup_logger.error(f"PIN setup failed: {e}")
        return ExitCodes.FAILURE

    return ExitCodes.SUCCESS


def qt_message_handler(msg_type, context, message):
    """Route Qt's own warnings into the setup log."""
    from PyQt6.QtCore import QtMsgType

    logger = logging.getLogger("BitLockerPin.qt")
    if msg_type == QtMsgType.QtDebugMsg:
        logger.debug(f"Qt: {message}")
    elif msg_type == QtMsgType.QtInfoMsg:
        logger.info(f"Qt: {message}")
    elif msg_type == QtMsgType.QtWarningMsg:
        logger.warning(f"Qt: {message}")
    else:
        logger.error(f"Qt: {message}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser("Set a BitLocker startup PIN")
    args = parser.parse_args(argv)

    logger = _setup_logger
    try:
        ctx = prepare(args, FileNames.SETUP_LOG)
        logger = ctx.logger
        sys.excepthook = create_exception_hook(logger)

        if not is_admin():
            logger.error("Administrator rights are required to add a key protector")
            return ExitCodes.FAILURE

        from PyQt6.QtCore import qInstallMessageHandler

        from bitlockerpin.gui.pin_dialog import prompt_for_pin, show_message

        qInstallMessageHandler(qt_message_handler)

        return run_setup(ctx.mount_point, ctx.marker_path, prompt=prompt_for_pin, notify=show_message)
    except Exception:
        logger.exception("PIN setup crashed")
        return ExitCodes.FAILURE


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
