"""Tkinter based desktop window for prospect triage."""
from __future__ import annotations

import logging
import queue
import tkinter as tk
from concurrent.futures import Future
from tkinter import filedialog, messagebox, ttk
from typing import Dict, List, Optional, Set

from ..config import ConfigurationError, TriageSettings, load_settings
from ..factory import build_controller, build_feed, build_store
from ..ingestion import export_prospects
from ..merge import ProspectList
from ..models import Prospect, TriageAction, TriageResult
from ..stats import StatusCounts
from .presenter import (
    ACTION_LABELS,
    SORT_KEYS,
    TABLE_COLUMNS,
    available_actions,
    counter_text,
    describe_result,
    filter_prospects,
    row_values,
    sort_prospects,
)
from .runner import AsyncRunner

LOGGER = logging.getLogger(__name__)


class StatCard(ttk.LabelFrame):
    """Header card showing one derived counter."""

    def __init__(self, master: tk.Misc, label: str) -> None:
        super().__init__(master, text=label, padding=8)
        self.value_var = tk.StringVar(value="-")
        self.subtext_var = tk.StringVar(value="")
        ttk.Label(self, textvariable=self.value_var, font=("TkDefaultFont", 16, "bold")).pack(anchor="w")
        ttk.Label(self, textvariable=self.subtext_var).pack(anchor="w")

    def update_card(self, value: str, subtext: str) -> None:
        self.value_var.set(value)
        self.subtext_var.set(subtext)


class TriageApp:
    """Main application window."""

    STATUS_COLORS = {
        "new": "#E3F2FD",
        "qualified": "#E8F5E9",
        "contacted": "#FFF3E0",
        "converted": "#EDE7F6",
        "disqualified": "#ECEFF1",
    }

    def __init__(self, root: tk.Tk, settings: Optional[TriageSettings] = None) -> None:
        self.root = root
        self.root.title("Prospect Triage")
        self.root.geometry("1100x720")
        self.root.minsize(900, 600)

        self.event_queue: "queue.Queue[tuple]" = queue.Queue()
        self.prospects: List[Prospect] = []
        self.counts = StatusCounts()
        self.loading = True
        self.pending: Set[str] = set()
        self.last_failure: Optional[TriageResult] = None

        self.filter_var = tk.StringVar()
        self.filter_var.trace_add("write", lambda *_: self.refresh_table())
        self.sort_var = tk.StringVar(value="newest")
        self.sort_var.trace_add("write", lambda *_: self.refresh_table())
        self.status_var = tk.StringVar(value="Connecting...")

        self._build_layout()
        self.root.protocol("WM_DELETE_WINDOW", self.on_close)

        self.settings = settings or self._load_settings()
        self.runner = AsyncRunner().start()
        self.store = build_store(self.settings)
        self.feed = build_feed(self.store, self.settings)
        self.controller = build_controller(self.store, self.feed, self.settings)
        # The list lives on the loop thread; the window only sees snapshots.
        self.feed.add_listener(self._on_list_changed)
        self._submit(self._startup(), "started")

        self.root.after(100, self._poll_queue)

    # ------------------------------------------------------------------
    def _build_layout(self) -> None:
        container = ttk.Frame(self.root, padding=12)
        container.pack(fill="both", expand=True)
        container.columnconfigure(0, weight=1)
        container.rowconfigure(2, weight=1)

        cards = ttk.Frame(container)
        cards.grid(row=0, column=0, sticky="ew")
        self.cards: List[StatCard] = []
        for index, (label, _, _) in enumerate(StatusCounts().stat_cards()):
            card = StatCard(cards, label)
            card.grid(row=0, column=index, sticky="ew", padx=(0 if index == 0 else 8, 0))
            cards.columnconfigure(index, weight=1)
            self.cards.append(card)

        self._build_toolbar(container)
        self._build_table(container)

        status_bar = ttk.Frame(container)
        status_bar.grid(row=3, column=0, sticky="ew", pady=(8, 0))
        status_bar.columnconfigure(0, weight=1)
        ttk.Label(status_bar, textvariable=self.status_var).grid(row=0, column=0, sticky="w")
        self.retry_button = ttk.Button(status_bar, text="Retry", command=self.retry_last_failure, state="disabled")
        self.retry_button.grid(row=0, column=1, sticky="e")

    # ------------------------------------------------------------------
    def _build_toolbar(self, parent: ttk.Frame) -> None:
        bar = ttk.Frame(parent)
        bar.grid(row=1, column=0, sticky="ew", pady=(12, 4))
        bar.columnconfigure(1, weight=1)

        ttk.Label(bar, text="Search").grid(row=0, column=0, padx=(0, 8))
        ttk.Entry(bar, textvariable=self.filter_var).grid(row=0, column=1, sticky="ew")
        ttk.Label(bar, text="Sort").grid(row=0, column=2, padx=(12, 4))
        ttk.Combobox(bar, textvariable=self.sort_var, values=sorted(SORT_KEYS), state="readonly", width=10).grid(
            row=0, column=3
        )

        actions = ttk.Frame(bar)
        actions.grid(row=0, column=4, padx=(12, 0))
        self.action_buttons: Dict[TriageAction, ttk.Button] = {}
        for action in (TriageAction.APPROVE, TriageAction.VIDEO_AUDIT, TriageAction.REJECT):
            button = ttk.Button(actions, text=ACTION_LABELS[action], command=lambda a=action: self.run_action(a))
            button.pack(side="left", padx=(0, 4))
            self.action_buttons[action] = button
        ttk.Button(actions, text="Export CSV", command=lambda: self.export(".csv")).pack(side="left", padx=(8, 4))
        ttk.Button(actions, text="Export Excel", command=lambda: self.export(".xlsx")).pack(side="left")

    # ------------------------------------------------------------------
    def _build_table(self, parent: ttk.Frame) -> None:
        frame = ttk.Frame(parent)
        frame.grid(row=2, column=0, sticky="nsew")
        frame.columnconfigure(0, weight=1)
        frame.rowconfigure(0, weight=1)

        columns = [key for key, _ in TABLE_COLUMNS]
        self.tree = ttk.Treeview(frame, columns=columns, show="headings", selectmode="browse")
        for key, heading in TABLE_COLUMNS:
            self.tree.heading(key, text=heading)
            self.tree.column(key, anchor="w", width=80 if key == "score" else 140)
        for status, colour in self.STATUS_COLORS.items():
            self.tree.tag_configure(f"status::{status}", background=colour)
        self.tree.grid(row=0, column=0, sticky="nsew")
        self.tree.bind("<<TreeviewSelect>>", lambda _event: self._update_action_buttons())

        scroll = ttk.Scrollbar(frame, orient="vertical", command=self.tree.yview)
        self.tree.configure(yscrollcommand=scroll.set)
        scroll.grid(row=0, column=1, sticky="ns")

    # ------------------------------------------------------------------
    async def _startup(self) -> None:
        await self.store.connect()
        await self.feed.start()
        if self.feed.load_error is not None:
            self.event_queue.put(("error", "Loading prospects failed", self.feed.load_error, None))

    async def _shutdown(self) -> None:
        await self.feed.close()
        await self.store.close()

    def _submit(self, coro, kind: str, prospect_id: Optional[str] = None) -> Future:
        future = self.runner.submit(coro)
        future.add_done_callback(lambda done: self._forward(kind, prospect_id, done))
        return future

    def _forward(self, kind: str, prospect_id: Optional[str], future: Future) -> None:
        if future.cancelled():
            self.event_queue.put(("error", f"{kind} cancelled", None, prospect_id))
            return
        exc = future.exception()
        if exc is not None:
            self.event_queue.put(("error", f"{kind} failed", exc, prospect_id))
            return
        self.event_queue.put((kind, future.result()))

    def _on_list_changed(self, prospects: ProspectList) -> None:
        self.event_queue.put(("prospects", prospects.snapshot(), prospects.counts()))

    # ------------------------------------------------------------------
    def selected_prospect(self) -> Optional[Prospect]:
        selection = self.tree.selection()
        if not selection:
            return None
        prospect_id = selection[0]
        return next((prospect for prospect in self.prospects if prospect.id == prospect_id), None)

    def run_action(self, action: TriageAction) -> None:
        prospect = self.selected_prospect()
        if prospect is None:
            messagebox.showinfo("No selection", "Select a prospect first.")
            return
        if action not in available_actions(prospect, pending=prospect.id in self.pending):
            self.status_var.set(f"{ACTION_LABELS[action]} is not available for prospect {prospect.id}")
            return
        self.pending.add(prospect.id)
        self._update_action_buttons()
        self.status_var.set(f"{ACTION_LABELS[action]}: saving prospect {prospect.id}...")
        self._submit(self.controller.perform(prospect.id, action), "result", prospect.id)

    def retry_last_failure(self) -> None:
        failure = self.last_failure
        if failure is None:
            return
        self.last_failure = None
        self.retry_button.configure(state="disabled")
        self.pending.add(failure.prospect_id)
        self.status_var.set(f"Retrying {ACTION_LABELS[failure.action]} for prospect {failure.prospect_id}...")
        self._submit(self.controller.retry(failure), "result", failure.prospect_id)

    def export(self, suffix: str) -> None:
        rows = self.visible_prospects()
        if not rows:
            messagebox.showinfo("No prospects", "There is nothing to export yet.")
            return
        filetypes = [("CSV", "*.csv")] if suffix == ".csv" else [("Excel", "*.xlsx")]
        path = filedialog.asksaveasfilename(defaultextension=suffix, filetypes=filetypes)
        if not path:
            return
        try:
            export_prospects(rows, path)
        except Exception as exc:  # pragma: no cover - GUI surface
            messagebox.showerror("Export failed", str(exc))
            return
        messagebox.showinfo("Export complete", f"Prospects exported to {path}")

    # ------------------------------------------------------------------
    def _poll_queue(self) -> None:
        try:
            while True:
                event = self.event_queue.get_nowait()
                self._handle_event(event)
        except queue.Empty:
            pass
        finally:
            self.root.after(100, self._poll_queue)

    def _handle_event(self, event: tuple) -> None:
        kind = event[0]
        if kind == "prospects":
            _, snapshot, counts = event
            self.prospects = snapshot
            self.counts = counts
            self.refresh_table()
        elif kind == "started":
            self.loading = False
            self.status_var.set(f"Listening for new prospects ({len(self.prospects)} loaded)")
            self.refresh_cards()
        elif kind == "result":
            _, result = event
            self._handle_result(result)
        elif kind == "error":
            _, title, exc, prospect_id = event
            self.loading = False
            if prospect_id is not None:
                self.pending.discard(prospect_id)
                self._update_action_buttons()
            self.refresh_cards()
            LOGGER.error("%s: %s", title, exc)
            if isinstance(exc, ConfigurationError):
                messagebox.showerror("Configuration error", str(exc))
            self.status_var.set(title if exc is None else f"{title}: {exc}")

    def _handle_result(self, result: TriageResult) -> None:
        self.pending.discard(result.prospect_id)
        self.status_var.set(describe_result(result))
        if not result.ok and result.retryable:
            self.last_failure = result
            self.retry_button.configure(state="normal")
        self._update_action_buttons()

    # ------------------------------------------------------------------
    def visible_prospects(self) -> List[Prospect]:
        rows = filter_prospects(self.prospects, self.filter_var.get())
        key = self.sort_var.get()
        if key and key != "newest":
            rows = sort_prospects(rows, key)
        return rows

    def refresh_table(self) -> None:
        selected = self.tree.selection()
        self.tree.delete(*self.tree.get_children())
        for prospect in self.visible_prospects():
            self.tree.insert(
                "",
                "end",
                iid=prospect.id,
                values=row_values(prospect),
                tags=(f"status::{prospect.status.value}",),
            )
        keep = [item for item in selected if self.tree.exists(item)]
        if keep:
            self.tree.selection_set(keep)
        self.refresh_cards()
        self._update_action_buttons()

    def refresh_cards(self) -> None:
        for card, (_, value, subtext) in zip(self.cards, counter_text(self.counts, loading=self.loading)):
            card.update_card(value, subtext)

    def _update_action_buttons(self) -> None:
        prospect = self.selected_prospect()
        allowed = available_actions(prospect, pending=prospect.id in self.pending) if prospect else []
        for action, button in self.action_buttons.items():
            button.configure(state="normal" if action in allowed else "disabled")

    # ------------------------------------------------------------------
    def on_close(self) -> None:
        if self.pending and not messagebox.askyesno("Quit", "Some changes are still being saved. Quit anyway?"):
            return
        try:
            self.runner.submit(self._shutdown()).result(timeout=5)
        except Exception:  # pragma: no cover - best effort cleanup
            LOGGER.exception("Failed to close the prospect feed cleanly")
        self.runner.stop()
        self.root.destroy()

    # ------------------------------------------------------------------
    def _load_settings(self) -> TriageSettings:
        try:
            return load_settings()
        except ConfigurationError as exc:
            messagebox.showwarning("Configuration error", f"Failed to load configuration: {exc}")
            LOGGER.warning("Falling back to the in-memory store: %s", exc)
            return TriageSettings()


def main(settings: Optional[TriageSettings] = None) -> None:
    root = tk.Tk()
    TriageApp(root, settings)
    root.mainloop()


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
