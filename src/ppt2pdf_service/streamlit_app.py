import time
from concurrent.futures import ThreadPoolExecutor

import streamlit as st

from ppt2pdf_service.client import (
    API_BASE,
    CLIENT_MAX_UPLOAD_MB,
    PROGRESS_TICK_SEC,
    STATUS_FINALIZING,
    STATUS_UPLOADING,
    ConversionFailed,
    advance_progress,
    convert_file,
    validate_selection,
)


def _reset_state() -> None:
    for key in ["pdf_bytes", "pdf_name", "success"]:
        if key in st.session_state:
            del st.session_state[key]
    if "error" in st.session_state:
        del st.session_state["error"]
    # Bump the uploader key to clear the file widget
    st.session_state["upload_key"] = st.session_state.get("upload_key", 0) + 1


def _run_conversion(uploaded) -> None:
    text_slot = st.empty()
    prog_slot = st.empty()
    progress, label = 0, STATUS_UPLOADING
    text_slot.write(label)
    prog_slot.progress(progress)

    with ThreadPoolExecutor(max_workers=1) as pool:
        future = pool.submit(convert_file, uploaded.name, uploaded.getvalue(), uploaded.type)
        while not future.done():
            time.sleep(PROGRESS_TICK_SEC)
            progress, label = advance_progress(progress, label)
            text_slot.write(label)
            prog_slot.progress(progress)
        try:
            pdf, pdf_name = future.result()
        except ConversionFailed as e:
            text_slot.empty()
            prog_slot.empty()
            st.session_state["error"] = str(e)
            return

    text_slot.write(STATUS_FINALIZING)
    prog_slot.progress(100)
    time.sleep(PROGRESS_TICK_SEC)
    text_slot.empty()
    prog_slot.empty()
    st.session_state["pdf_bytes"] = pdf
    st.session_state["pdf_name"] = pdf_name
    st.session_state["success"] = "Conversion successful! Downloading PDF..."


def main() -> None:
    st.set_page_config(page_title="PowerPoint to PDF", page_icon="📄", layout="centered")
    st.title("📄 PowerPoint to PDF Converter")
    st.caption(f"API base: {API_BASE}")

    if "upload_key" not in st.session_state:
        st.session_state["upload_key"] = 0
    uploaded = st.file_uploader(
        f"Select a PowerPoint file (max {CLIENT_MAX_UPLOAD_MB}MB)",
        type=["ppt", "pptx"],
        key=f"uploader-{st.session_state['upload_key']}",
    )

    if uploaded is not None:
        problem = validate_selection(uploaded.name, uploaded.type, uploaded.size)
        if problem:
            _reset_state()
            st.session_state["error"] = problem
            st.rerun()

    if st.button("Convert to PDF", type="primary", disabled=uploaded is None):
        st.session_state.pop("error", None)
        st.session_state.pop("success", None)
        _run_conversion(uploaded)

    if "pdf_bytes" in st.session_state:
        st.success(st.session_state["success"])
        st.download_button(
            label=f"Download {st.session_state['pdf_name']}",
            data=st.session_state["pdf_bytes"],
            file_name=st.session_state["pdf_name"],
            mime="application/pdf",
        )

    if err := st.session_state.get("error"):
        st.error(err)


if __name__ == "__main__":
    main()
