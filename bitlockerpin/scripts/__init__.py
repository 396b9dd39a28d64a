# Entry points run by Intune (check, detect, remediate) and the
# interactive setup tool launched by the remediation.
