from .status_poller import POLL_INTERVAL_SECONDS, PollTerminal, StatusPoller

__all__ = ['POLL_INTERVAL_SECONDS', 'PollTerminal', 'StatusPoller']
