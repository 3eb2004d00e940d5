#!/usr/bin/env python3
"""
Tkinter recording console for the Brand Voice Recorder API.

Features:
    * Load brands from /brands and pick the one to record for.
    * Record from the microphone (44.1 kHz mono), trimmed before upload.
    * Follow the server pipeline live over /process-events.
    * Open the recording URL returned by /voice-clone.
"""

from __future__ import annotations

import json
import os
import threading
import webbrowser
from typing import Any, Optional

import httpx

import tkinter as tk
from tkinter import messagebox, ttk
from tkinter.scrolledtext import ScrolledText

from app.capture import CaptureState, RecordingSession
from app.services.errors import CaptureUnavailable

DEFAULT_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
REQUEST_TIMEOUT = httpx.Timeout(120.0, connect=10.0)

STATE_LABELS = {
    CaptureState.IDLE: "Ready to record",
    CaptureState.RECORDING: "Recording…",
    CaptureState.PROCESSING: "Processing audio…",
    CaptureState.TRANSFORMING: "Converting voice…",
    CaptureState.UPLOADING: "Uploading recording…",
    CaptureState.PERSISTING: "Saving to database…",
    CaptureState.COMPLETED: "Completed",
    CaptureState.ERROR: "Error",
}


class RecorderConsole(tk.Tk):
    def __init__(self) -> None:
        super().__init__()
        self.title("Brand Voice Recorder")
        self.minsize(760, 560)

        self.base_url = DEFAULT_BASE_URL.rstrip("/")
        self.http = httpx.Client(timeout=REQUEST_TIMEOUT)
        self.recording = RecordingSession()

        self._brands: dict[str, dict[str, Any]] = {}
        self._client_id: Optional[str] = None
        self._events_stop = threading.Event()
        self._last_url: Optional[str] = None

        self._build_ui()
        self.protocol("WM_DELETE_WINDOW", self._on_app_close)
        self.log(f"Console ready. Using API base URL: {self.base_url}")
        self._start_event_listener()
        self._load_brands()
        self._tick()

    # --- UI construction -------------------------------------------------

    def _build_ui(self) -> None:
        self.columnconfigure(0, weight=1)
        self.rowconfigure(2, weight=1)

        config_frame = ttk.LabelFrame(self, text="Configuration")
        config_frame.grid(row=0, column=0, sticky="ew", padx=12, pady=(12, 6))
        config_frame.columnconfigure(1, weight=1)

        ttk.Label(config_frame, text="Base URL").grid(row=0, column=0, padx=6, pady=6)
        self.base_url_var = tk.StringVar(value=self.base_url)
        ttk.Entry(config_frame, textvariable=self.base_url_var).grid(
            row=0, column=1, sticky="ew", padx=(0, 6), pady=6
        )
        ttk.Button(
            config_frame,
            text="Apply",
            command=self._update_base_url,
            width=10,
        ).grid(row=0, column=2, padx=6, pady=6)

        ttk.Label(config_frame, text="Brand").grid(row=1, column=0, padx=6, pady=6)
        self.brand_var = tk.StringVar()
        self.brand_combo = ttk.Combobox(
            config_frame, textvariable=self.brand_var, state="readonly"
        )
        self.brand_combo.grid(row=1, column=1, sticky="ew", padx=(0, 6), pady=6)
        self.brand_combo.bind("<<ComboboxSelected>>", self._on_brand_selected)
        ttk.Button(
            config_frame,
            text="Reload",
            command=self._load_brands,
            width=10,
        ).grid(row=1, column=2, padx=6, pady=6)

        record_frame = ttk.LabelFrame(self, text="Record")
        record_frame.grid(row=1, column=0, sticky="ew", padx=12, pady=6)
        record_frame.columnconfigure(3, weight=1)

        self.record_button = ttk.Button(
            record_frame,
            text="Start Recording",
            command=self._toggle_recording,
            width=18,
            state="disabled",
        )
        self.record_button.grid(row=0, column=0, padx=8, pady=8, sticky="w")

        self.open_url_button = ttk.Button(
            record_frame,
            text="Open Recording URL",
            command=self._open_last_url,
            state="disabled",
            width=20,
        )
        self.open_url_button.grid(row=0, column=1, padx=8, pady=8, sticky="w")

        ttk.Button(
            record_frame,
            text="Pipeline Stages",
            command=self._show_stages,
            width=16,
        ).grid(row=0, column=2, padx=8, pady=8, sticky="w")

        self.status_var = tk.StringVar(value="Select a brand")
        ttk.Label(record_frame, textvariable=self.status_var).grid(
            row=1, column=0, columnspan=4, padx=8, pady=(0, 8), sticky="w"
        )

        self.output = ScrolledText(self, height=18, state="disabled", wrap="word")
        self.output.grid(row=2, column=0, sticky="nsew", padx=12, pady=(6, 12))

    # --- Configuration ---------------------------------------------------

    def _update_base_url(self) -> None:
        value = self.base_url_var.get().strip().rstrip("/")
        if not value:
            messagebox.showerror("Validation", "Base URL is required.")
            return
        self.base_url = value
        self.log(f"Base URL set to {value}")
        self._restart_event_listener()
        self._load_brands()

    def _selected_brand(self) -> Optional[dict[str, Any]]:
        return self._brands.get(self.brand_var.get())

    def _on_brand_selected(self, *_args: Any) -> None:
        brand = self._selected_brand()
        if brand is None:
            return
        self.recording.select_brand(brand["id"])
        self.record_button.config(state="normal", text="Start Recording")
        self.log(f"Brand selected: {brand['merchantName']} ({brand['merchantId']})")
        if brand.get("recordUrl"):
            self._set_last_url(brand["recordUrl"])

    def _load_brands(self) -> None:
        def task() -> None:
            response = self._perform_request("Load brands", "GET", "/brands")
            if response is None:
                return
            brands = response.json().get("brands", [])
            self.after(0, lambda: self._set_brands(brands))

        self._run_async(task)

    def _set_brands(self, brands: list[dict[str, Any]]) -> None:
        self._brands = {
            f"{brand['merchantName']} ({brand['merchantId']})": brand for brand in brands
        }
        self.brand_combo.config(values=list(self._brands))
        self.log(f"Loaded {len(brands)} brand(s).")

    def _show_stages(self) -> None:
        def task() -> None:
            response = self._perform_request("Stages", "GET", "/voice-clone/stages")
            if response is None:
                return
            for stage in response.json().get("stages", []):
                self.log(f"  {stage['order']}. {stage['label']}: {stage['summary']}")

        self._run_async(task)

    # --- Recording -------------------------------------------------------

    def _toggle_recording(self) -> None:
        if self.recording.state is CaptureState.RECORDING:
            self._stop_recording()
        else:
            self._start_recording()

    def _start_recording(self) -> None:
        if self._selected_brand() is None:
            messagebox.showerror("Validation", "Select a brand first.")
            return
        if self.recording.state in (CaptureState.COMPLETED, CaptureState.ERROR):
            self.recording.reset()
        try:
            self.recording.start_capture()
        except CaptureUnavailable as exc:
            self.log(f"Unable to start recording: {exc}")
            messagebox.showerror("Recording error", str(exc))
            self.recording.reset()
            return

        self.record_button.config(text="Stop Recording")
        self.log("Recording started (44.1 kHz mono).")

    def _stop_recording(self) -> None:
        try:
            audio = self.recording.stop_capture()
        except CaptureUnavailable as exc:
            self.log(f"Recording failed: {exc}")
            self.record_button.config(text="Start Recording")
            return

        self.record_button.config(text="Start Recording", state="disabled")
        self.log(f"Recording stopped after {self.recording.elapsed:.1f}s; uploading.")
        self._submit(audio)

    def _submit(self, audio: bytes) -> None:
        brand = self._selected_brand()
        if brand is None:
            return
        data = {"brandId": str(brand["id"])}
        if self._client_id:
            data["clientId"] = self._client_id

        def task() -> None:
            response = self._perform_request(
                "Voice clone",
                "POST",
                "/voice-clone",
                data=data,
                files={"audio": ("recording.wav", audio, "audio/wav")},
                accept_errors=True,
            )
            self.after(0, lambda: self._finish_submit(response))

        self._run_async(task)

    def _finish_submit(self, response: Optional[httpx.Response]) -> None:
        self.record_button.config(state="normal")
        if response is None:
            self.recording.finish_submission(False)
            return

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        if response.is_error or not payload.get("success"):
            error = payload.get("error") or f"Voice clone request failed ({response.status_code})"
            self.recording.finish_submission(False, error)
            messagebox.showerror("Voice clone failed", error)
            return

        url = payload.get("url")
        if url:
            self._set_last_url(url)
        if not payload.get("dbUpdateSuccess", True):
            messagebox.showwarning(
                "Partial success",
                "The recording was uploaded but the brand record was not updated.",
            )
        self.recording.finish_submission(True)

    def _set_last_url(self, url: Optional[str]) -> None:
        self._last_url = url
        self.open_url_button.config(state="normal" if url else "disabled")
        if url:
            self.log(f"Recording URL: {url}")

    def _open_last_url(self) -> None:
        if self._last_url:
            webbrowser.open(self._last_url)

    def _tick(self) -> None:
        label = STATE_LABELS[self.recording.state]
        if self.recording.state is CaptureState.RECORDING:
            label = f"{label} {self.recording.elapsed:.1f}s"
        elif self.recording.state is CaptureState.ERROR and self.recording.last_error:
            label = f"{label}: {self.recording.last_error}"
        elif self.recording.brand_id is None:
            label = "Select a brand"
        self.status_var.set(label)
        self.after(200, self._tick)

    # --- Progress events -------------------------------------------------

    def _start_event_listener(self) -> None:
        self._events_stop.clear()
        thread = threading.Thread(
            target=self._listen_events, args=(self.base_url,), daemon=True
        )
        thread.start()

    def _restart_event_listener(self) -> None:
        self._events_stop.set()
        self._client_id = None
        self._events_stop = threading.Event()
        self._start_event_listener()

    def _listen_events(self, base_url: str) -> None:
        stop = self._events_stop
        timeout = httpx.Timeout(10.0, read=None)
        while not stop.is_set():
            try:
                with httpx.stream("GET", f"{base_url}/process-events", timeout=timeout) as response:
                    response.raise_for_status()
                    for line in response.iter_lines():
                        if stop.is_set():
                            return
                        if line.startswith("data:"):
                            self._handle_event(json.loads(line[5:].strip()))
            except (httpx.HTTPError, ValueError) as exc:
                self.log(f"Progress stream interrupted: {exc}")
            self._client_id = None
            stop.wait(5.0)

    def _handle_event(self, event: dict[str, Any]) -> None:
        if event.get("connected"):
            self._client_id = event.get("clientId")
            self.log(f"Progress stream connected as {self._client_id}")
            return
        if event.get("heartbeat"):
            return
        step = event.get("step")
        if not step:
            return
        error = event.get("error")
        self.log(f"Step: {step}" + (f" ({error})" if error else ""))
        self.after(0, lambda: self.recording.apply_server_step(step, error))

    # --- HTTP helpers ----------------------------------------------------

    def _run_async(self, callback: Any) -> None:
        thread = threading.Thread(target=callback, daemon=True)
        thread.start()

    def _perform_request(
        self,
        label: str,
        method: str,
        endpoint: str,
        *,
        accept_errors: bool = False,
        **kwargs: Any,
    ) -> Optional[httpx.Response]:
        url = f"{self.base_url}{endpoint}"
        self.log(f"{label}: {method.upper()} {url}")
        try:
            response = self.http.request(method.upper(), url, **kwargs)
        except httpx.HTTPError as exc:
            self.log(f"{label} failed: {exc}")
            return None

        self._log_response(label, response)
        if response.is_error and not accept_errors:
            return None
        return response

    # --- Logging helpers -------------------------------------------------

    def log(self, message: str) -> None:
        def _append() -> None:
            self.output.configure(state="normal")
            self.output.insert("end", f"{message}\n")
            self.output.configure(state="disabled")
            self.output.see("end")

        self.after(0, _append)

    def _log_response(self, label: str, response: httpx.Response) -> None:
        try:
            body = json.dumps(response.json(), indent=2)
        except ValueError:
            body = response.text.strip() or "<empty body>"
        self.log(f"{label} response ({response.status_code}):\n{body}\n")

    # ---------------------------------------------------------------------
    def _on_app_close(self) -> None:
        self._events_stop.set()
        self.recording.select_brand(None)
        self.http.close()
        self.destroy()


def main() -> None:
    app = RecorderConsole()
    app.mainloop()


if __name__ == "__main__":
    main()
