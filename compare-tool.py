#!/usr/bin/env python3
"""
文本高亮对比工具 - Streamlit 版本
运行: streamlit run compare-tool.py
"""

import html
import os
import sys

import streamlit as st

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from campaign_detector.services.text_alignment import (  # noqa: E402
    AlignmentMode,
    AlignmentResult,
    Segment,
    get_aligner,
)

HIGHLIGHT_STYLE = "background-color:#fef08a;color:#0f172a;border-radius:3px;padding:0 2px;font-weight:500"


def render_segments(segments: list[Segment]) -> str:
    """Matched segments become <mark>; segment text is escaped but never altered."""
    parts = []
    for segment in segments:
        escaped = html.escape(segment.text)
        if segment.is_match and segment.text.strip():
            parts.append(f'<mark style="{HIGHLIGHT_STYLE}">{escaped}</mark>')
        else:
            parts.append(f"<span>{escaped}</span>")
    return f'<div style="white-space:pre-wrap;word-break:break-word">{"".join(parts)}</div>'


def main():
    st.set_page_config(page_title="Campaign Text Highlighter", page_icon="🔍", layout="wide")
    st.title("🔍 Campaign Text Highlighter")
    st.markdown("---")

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("📝 Reference (OCR text)")
        reference = st.text_area("Reference", height=220, key="reference", label_visibility="collapsed")
    with col2:
        st.subheader("📝 Candidate (stored campaign)")
        candidate = st.text_area("Candidate", height=220, key="candidate", label_visibility="collapsed")

    with st.sidebar:
        st.header("⚙️ Options")
        mode = st.radio(
            "Alignment mode",
            options=[m.value for m in AlignmentMode],
            format_func=lambda value: "Exact (character diff)" if value == "exact" else "Loose (word set)",
        )
        min_match_chars = st.slider("Minimum highlighted characters", 1, 10, 1, disabled=mode != "exact")

    if st.button("🔄 Highlight", type="primary"):
        aligner = get_aligner(mode, min_match_chars=min_match_chars)
        result = AlignmentResult(segments=aligner.align(reference, candidate), mode=AlignmentMode(mode))

        st.markdown("---")
        metric1, metric2, metric3 = st.columns(3)
        metric1.metric("Coverage", f"{result.coverage * 100:.1f}%")
        metric2.metric("Matched characters", result.matched_chars)
        metric3.metric("Segments", len(result.segments))

        st.markdown(render_segments(result.segments), unsafe_allow_html=True)


if __name__ == "__main__":
    main()
