"""
devbox — idempotent developer-workstation provisioning.

Runs an ordered list of check-then-install steps (packages, runtimes,
CLIs, shell-profile blocks, editor extensions) against the local machine.
"""

__version__ = "0.1.0"
