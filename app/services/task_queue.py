"""
Arka plan görev kuyruğu: mesaj tabanlı, süreç içi.

Çağıran taraf (ör. ödeme onayı) sadece enqueue eder ve transaction'ını bitirir;
ayrı bir işçi thread mesajları tüketir. Her görev kendi veritabanı oturumunda
çalışır, sipariş üzerinde kilit tutmaz ve webhook yanıtını bekletmez.
Testlerde işçi kapatılır ve kuyruk drain() ile senkron boşaltılır.
"""
import logging
import queue
import threading
import time
import uuid
from typing import Any, Callable, NamedTuple

from sqlmodel import Session

from app.core.database import new_session

log = logging.getLogger("checkout.tasks")

TaskHandler = Callable[..., Any]


class TaskMessage(NamedTuple):
    id: str
    name: str
    payload: dict[str, Any]
    enqueued_at: float


class TaskQueue:
    def __init__(self, session_factory: Callable[[], Session] = new_session) -> None:
        self._queue: "queue.Queue[TaskMessage]" = queue.Queue()
        self._handlers: dict[str, TaskHandler] = {}
        self._session_factory = session_factory
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def task(self, name: str) -> Callable[[TaskHandler], TaskHandler]:
        """Handler kaydı: handler(db, **payload)."""

        def decorator(fn: TaskHandler) -> TaskHandler:
            self._handlers[name] = fn
            return fn

        return decorator

    def enqueue(self, name: str, **payload: Any) -> str:
        if name not in self._handlers:
            raise KeyError(f"Unknown task: {name}")
        msg = TaskMessage(id=uuid.uuid4().hex, name=name, payload=payload, enqueued_at=time.time())
        self._queue.put(msg)
        log.info("Task enqueued: %s id=%s payload=%s", name, msg.id, payload)
        return msg.id

    def pending(self) -> int:
        return self._queue.qsize()

    def drain(self, max_tasks: int | None = None) -> int:
        """Bekleyen mesajları bu thread'de işler (görevlerin eklediği yeni mesajlar dahil)."""
        processed = 0
        while max_tasks is None or processed < max_tasks:
            try:
                msg = self._queue.get_nowait()
            except queue.Empty:
                break
            self._dispatch(msg)
            processed += 1
        return processed

    def clear(self) -> None:
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return

    def _dispatch(self, msg: TaskMessage) -> None:
        handler = self._handlers.get(msg.name)
        if handler is None:
            log.error("No handler for task %s id=%s", msg.name, msg.id)
            return
        t0 = time.perf_counter()
        try:
            with self._session_factory() as db:
                handler(db, **msg.payload)
        except Exception:
            # Görev hatası işçiyi durdurmaz; tetikleyen transaction zaten commit edilmiş durumda
            log.exception("Task failed: %s id=%s", msg.name, msg.id)
        else:
            log.info("Task done: %s id=%s duration_ms=%.2f", msg.name, msg.id, (time.perf_counter() - t0) * 1000)
        finally:
            self._queue.task_done()

    def _worker(self) -> None:
        while not self._stop.is_set():
            try:
                msg = self._queue.get(timeout=0.5)
            except queue.Empty:
                continue
            self._dispatch(msg)

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._worker, name="task-worker", daemon=True)
        self._thread.start()
        log.info("Task worker started")

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None
        log.info("Task worker stopped (pending=%s)", self.pending())


task_queue = TaskQueue()
