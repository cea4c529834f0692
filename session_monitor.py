"""Session timeout monitor for the admin console.

Polls the portal's session-status endpoint, keeps a declarative dialog state
(hidden, warning with a countdown, or expired) for the host UI to render,
extends the session on user activity and forces a logout once the server
reports the session as gone.

Timers come from an injectable scheduler and HTTP goes through
:class:`SessionClient`, so the monitor can be driven without real time or a
real server.
"""
import enum
import logging
import queue
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Optional

import requests

logger = logging.getLogger(__name__)

ACTIVITY_EVENTS = frozenset({'mousedown', 'mousemove', 'keypress', 'scroll', 'touchstart', 'click'})
VISIBILITY_EVENT = 'visibilitychange'
LOGIN_PATH = '/admin/login'
AUTH_STORAGE_KEYS = ('auth_token', 'user')

STATUS_PATH = '/api/auth/session-status'
EXTEND_PATH = '/api/auth/extend-session'
LOGOUT_PATH = '/api/logout'


def format_countdown(seconds):
    """Render remaining seconds as ``M:SS``."""
    seconds = max(0, int(seconds))
    return f'{seconds // 60}:{seconds % 60:02d}'


@dataclass(frozen=True)
class MonitorConfig:
    warning_time: int = 300
    check_interval: float = 30
    extend_on_activity: bool = True
    expiry_logout_delay: float = 3.0


@dataclass(frozen=True)
class ApiResult:
    ok: bool
    status: Optional[int] = None
    data: dict = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def unauthorized(self):
        return self.status == 401


class DialogKind(enum.Enum):
    HIDDEN = 'hidden'
    WARNING = 'warning'
    EXPIRED = 'expired'


@dataclass(frozen=True)
class DialogState:
    kind: DialogKind = DialogKind.HIDDEN
    time_remaining: int = 0
    countdown: str = ''
    # bumped each time a new dialog opens; updates keep it
    instance: int = 0

    @property
    def visible(self):
        return self.kind is not DialogKind.HIDDEN

    @property
    def countdown_text(self):
        if self.kind is not DialogKind.WARNING:
            return ''
        return f'Time remaining: {self.countdown}'


@dataclass
class ClientStorage:
    local: dict = field(default_factory=dict)
    session: dict = field(default_factory=dict)

    def clear_auth(self):
        for key in AUTH_STORAGE_KEYS:
            self.local.pop(key, None)
        self.session.clear()


class SessionClient:
    """Talks to the session endpoints; never raises, every call returns an ApiResult."""

    def __init__(self, base_url, http=None, timeout=10):
        self.base_url = base_url.rstrip('/')
        self.http = http or requests.Session()
        self.timeout = timeout

    def get_status(self):
        return self._call('GET', STATUS_PATH)

    def extend(self):
        return self._call('POST', EXTEND_PATH)

    def logout(self):
        return self._call('POST', LOGOUT_PATH)

    def _call(self, method, path):
        try:
            response = self.http.request(method, self.base_url + path, timeout=self.timeout,
                                         headers={'Accept': 'application/json'})
        except requests.RequestException as exc:
            return ApiResult(ok=False, error=str(exc))
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if response.status_code >= 400:
            return ApiResult(ok=False, status=response.status_code, data=data,
                             error=data.get('message') or f'HTTP {response.status_code}')
        return ApiResult(ok=True, status=response.status_code, data=data)


class _QueuedCall:
    def __init__(self, callback):
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ThreadingScheduler:
    """Delayed calls get a ``threading.Timer`` each; zero-delay calls share one worker thread."""

    def __init__(self):
        self._queue = queue.Queue()
        self._worker = None
        self._lock = threading.Lock()

    def call_later(self, delay, callback):
        if delay > 0:
            timer = threading.Timer(delay, callback)
            timer.daemon = True
            timer.start()
            return timer
        call = _QueuedCall(callback)
        self._queue.put(call)
        with self._lock:
            if self._worker is None:
                self._worker = threading.Thread(target=self._drain, name='session-monitor', daemon=True)
                self._worker.start()
        return call

    def cancel(self, handle):
        handle.cancel()

    def _drain(self):
        while True:
            call = self._queue.get()
            if call.cancelled:
                continue
            try:
                call.callback()
            except Exception:
                logger.exception('Scheduled call %r failed', call.callback)


class SessionTimeoutMonitor:
    """Keeps the client's view of the admin session in step with the server.

    ``on_dialog_change`` receives every new :class:`DialogState`; ``navigate``
    is called with the login path when the monitor logs the user out.
    """

    def __init__(self, client, config=None, scheduler=None, storage=None, navigate=None,
                 on_dialog_change=None, clock=time.time, login_path=LOGIN_PATH):
        self.client = client
        self.config = config or MonitorConfig()
        self.scheduler = scheduler or ThreadingScheduler()
        self.storage = storage if storage is not None else ClientStorage()
        self.navigate = navigate
        self.on_dialog_change = on_dialog_change
        self.login_path = login_path
        self._clock = clock
        self.last_activity = clock()
        self.dialog = DialogState()
        self.listening = False
        self.started = False
        self.expired = False
        self.logged_out = False
        self.destroyed = False
        self._lock = threading.RLock()
        self._poll_handle = None
        self._expiry_handle = None
        self._poll_seq = 0
        # status responses to polls numbered at or below this are stale
        self._stale_through = 0

    @property
    def warning_shown(self):
        return self.dialog.kind is DialogKind.WARNING

    # --- lifecycle ---

    def start(self):
        with self._lock:
            if self.started or self.destroyed:
                return
            self.started = True
            self.listening = self.config.extend_on_activity
            self._schedule_poll()
        logger.debug('Session monitor started (interval=%ss)', self.config.check_interval)

    def destroy(self):
        with self._lock:
            if self.destroyed:
                return
            self.destroyed = True
            self.listening = False
            self._cancel_timers()
            if self.dialog.visible:
                self._set_dialog(replace(self.dialog, kind=DialogKind.HIDDEN))
        logger.debug('Session monitor destroyed')

    # --- polling ---

    def check_session_status(self):
        with self._lock:
            if self.destroyed or self.expired or self.logged_out:
                return None
            self._poll_seq += 1
            seq = self._poll_seq

        result = self.client.get_status()

        with self._lock:
            if self.destroyed or self.expired or self.logged_out:
                return result
            if seq != self._poll_seq or seq <= self._stale_through:
                logger.debug('Discarding stale session status response #%s', seq)
                return result
            expired = result.unauthorized or (result.ok and result.data.get('valid') is False)
            if not expired:
                if result.ok:
                    try:
                        self._apply_status(result.data)
                    except (TypeError, ValueError) as exc:
                        logger.warning('Ignoring malformed session status %r: %s', result.data, exc)
                else:
                    logger.warning('Session status check failed: %s', result.error)
                return result
        self.handle_session_expired()
        return result

    def _apply_status(self, status):
        time_remaining = int(status.get('timeRemaining') or 0)
        is_warning = status.get('isWarning')
        if is_warning is None:
            is_warning = time_remaining <= self.config.warning_time
        if is_warning and not self.warning_shown:
            self.show_timeout_warning(time_remaining)
        elif is_warning and time_remaining > 0:
            self.update_timeout_warning(time_remaining)
        elif not is_warning and self.warning_shown:
            self.hide_timeout_warning()

    def _schedule_poll(self):
        self._poll_handle = self.scheduler.call_later(self.config.check_interval, self._poll_tick)

    def _poll_tick(self):
        with self._lock:
            if self.destroyed or self.expired or self.logged_out:
                return
            self._poll_handle = None
        try:
            self.check_session_status()
        finally:
            with self._lock:
                if not (self.destroyed or self.expired or self.logged_out) and self._poll_handle is None:
                    self._schedule_poll()

    # --- extending ---

    def extend_session(self):
        with self._lock:
            if self.destroyed or self.logged_out:
                return ApiResult(ok=False, error='monitor stopped')

        result = self.client.extend()

        with self._lock:
            if self.destroyed:
                return result
            if result.ok:
                self._stale_through = self._poll_seq
                self.hide_timeout_warning()
            else:
                logger.warning('Failed to extend session: %s', result.error)
        return result

    def record_activity(self, event, hidden=False):
        """Feed a UI event in; qualifying events schedule an extend call. Returns whether it qualified.

        Every qualifying event gets its own extend; with :class:`ThreadingScheduler` they run one
        after another on a single worker thread.
        """
        qualifies = event in ACTIVITY_EVENTS or (event == VISIBILITY_EVENT and not hidden)
        if not qualifies:
            return False
        with self._lock:
            if not self.listening or self.destroyed:
                return False
            self.last_activity = self._clock()
            self.scheduler.call_later(0, self.extend_session)
        return True

    # --- dialog ---

    def show_timeout_warning(self, seconds):
        with self._lock:
            if self.destroyed or self.expired or self.logged_out:
                return
            if self.warning_shown:
                self.update_timeout_warning(seconds)
                return
            self._set_dialog(DialogState(DialogKind.WARNING, int(seconds), format_countdown(seconds),
                                         self.dialog.instance + 1))

    def update_timeout_warning(self, seconds):
        with self._lock:
            if self.destroyed or not self.warning_shown:
                return
            self._set_dialog(replace(self.dialog, time_remaining=int(seconds), countdown=format_countdown(seconds)))

    def hide_timeout_warning(self):
        with self._lock:
            if self.warning_shown:
                self._set_dialog(replace(self.dialog, kind=DialogKind.HIDDEN))

    def stay_logged_in(self):
        return self.extend_session()

    def logout_now(self):
        self.force_logout()

    # --- expiry and logout ---

    def handle_session_expired(self):
        with self._lock:
            if self.destroyed or self.expired or self.logged_out:
                return
            self.expired = True
            self.listening = False
            if self._poll_handle is not None:
                self.scheduler.cancel(self._poll_handle)
                self._poll_handle = None
            self._set_dialog(DialogState(DialogKind.EXPIRED, 0, format_countdown(0), self.dialog.instance + 1))
            self._expiry_handle = self.scheduler.call_later(self.config.expiry_logout_delay, self.force_logout)
        logger.info('Session expired; logging out in %ss', self.config.expiry_logout_delay)

    def acknowledge_expiry(self):
        with self._lock:
            if self.dialog.kind is not DialogKind.EXPIRED:
                return
        self.force_logout()

    def force_logout(self):
        with self._lock:
            if self.logged_out or self.destroyed:
                return
            self.logged_out = True
            self.listening = False
            self._cancel_timers()

        result = self.client.logout()
        if not result.ok:
            logger.warning('Logout call failed: %s', result.error)

        with self._lock:
            self.storage.clear_auth()
            if self.dialog.visible:
                self._set_dialog(replace(self.dialog, kind=DialogKind.HIDDEN))
        if self.navigate is not None:
            self.navigate(self.login_path)
        else:
            logger.info('Logged out; redirect to %s', self.login_path)

    # --- internals ---

    def _cancel_timers(self):
        for handle in (self._poll_handle, self._expiry_handle):
            if handle is not None:
                self.scheduler.cancel(handle)
        self._poll_handle = None
        self._expiry_handle = None

    def _set_dialog(self, dialog):
        self.dialog = dialog
        if self.on_dialog_change is not None:
            self.on_dialog_change(dialog)


def create_session_monitor(base_url, http=None, **kwargs):
    """Build a client and monitor for ``base_url`` and start polling."""
    monitor = SessionTimeoutMonitor(SessionClient(base_url, http=http), **kwargs)
    monitor.start()
    return monitor
