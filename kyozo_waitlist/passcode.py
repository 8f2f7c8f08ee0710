"""Static passcode gate in front of the signup form.

The passcode is a shared value handed out with invitations. It only hides
the form from casual visitors and has no backing store.
"""

INVALID_PASSCODE_MESSAGE = "Invalid passcode. Please check and try again."


class PasscodeGate:
    """Checks an entered passcode against the configured one.

    Comparison ignores surrounding whitespace and letter case.

    Examples:
        >>> gate = PasscodeGate("KYOZO2026")
        >>> gate.check("  kyozo2026 ")
        True
        >>> gate.check("nope")
        False
    """

    def __init__(self, passcode: str) -> None:
        self._passcode = passcode.strip().upper()

    def check(self, entered: str) -> bool:
        return bool(self._passcode) and (entered or "").strip().upper() == self._passcode
