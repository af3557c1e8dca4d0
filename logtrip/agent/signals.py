import signal

_STOP = {"flag": False, "signal": None}
_PREVIOUS = {}

def _handler(signum, frame):
    _STOP["flag"] = True
    _STOP["signal"] = signum

def install_stop_handlers():
    """SIGINT (Ctrl-C) and SIGTERM (service stop) both ask the monitor loop to finish."""
    _STOP["flag"] = False
    _STOP["signal"] = None
    for sig in (signal.SIGINT, signal.SIGTERM):
        _PREVIOUS[sig] = signal.signal(sig, _handler)
    return _STOP

def restore_handlers():
    while _PREVIOUS:
        sig, previous = _PREVIOUS.popitem()
        signal.signal(sig, previous)
