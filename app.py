import streamlit as st, json, hashlib
import streamlit.components.v1 as components
from datetime import datetime, timezone

st.set_page_config(page_title="NIH Biosketch Checker", layout="wide")
st.title("NIH Biosketch Checker")

# --- UI (render first) ---
f = st.file_uploader("Upload a biosketch (DOCX or PDF, ≤20MB)", type=["docx", "pdf"], key="w_upload")
consent_proc = st.checkbox("I consent to on-device processing (required)", key="w_consent_process")
consent_llm = st.checkbox("Allow the configured LLM endpoint to tidy headings and citations", key="w_consent_llm")
show_sections = st.checkbox("Show detected sections", value=False, key="w_show_sections")
run = st.button("Check biosketch", type="primary", use_container_width=True, key="w_run")

# small helper to show exceptions nicely
def show_exc(prefix: str, e: Exception):
    st.error(f"{prefix}: {type(e).__name__}: {e}")

# --- lazy imports so UI appears even if deps missing ---
try:
    from biosketch import enhancer as enh, observability, process, template as tmpl
except Exception as e:
    show_exc("Import error (check files under biosketch/ and requirements)", e)
    st.stop()

SEVERITY_BADGE = {"red": "🔴", "yellow": "🟡", "green": "🟢"}

if run:
    if not f or not consent_proc:
        st.error("Please upload a file and accept processing consent.")
        st.stop()

    try:
        b = f.getvalue()
        run_id = hashlib.sha256(b).hexdigest()[:12]
        template = tmpl.load_template()
        enhancer = enh.create_enhancer() if consent_llm else enh.TextEnhancer()
        result = process.process_file(b, f.type or "", f.name, template=template, enhancer=enhancer)
        if isinstance(result, dict) and "error" in result:
            st.error(result["error"]); st.stop()

        summary = observability.summarize_run(result)
        st.subheader(f"{SEVERITY_BADGE[result.overall_status]} Overall status: {result.overall_status.upper()}")
        cols = st.columns(4)
        cols[0].metric("Critical", summary["issues"]["by_severity"].get("red", 0))
        cols[1].metric("Warnings", summary["issues"]["by_severity"].get("yellow", 0))
        cols[2].metric("Sections", summary["sections_detected"])
        cols[3].metric("Publications", summary["publications"])
        if result.low_confidence:
            st.warning("Text came from a PDF; extraction may be lossy. Double-check findings against the source.")

        for severity in ("red", "yellow"):
            found = [i for i in result.issues if i.severity == severity]
            if not found:
                continue
            with st.expander(f"{SEVERITY_BADGE[severity]} {len(found)} {'critical' if severity == 'red' else 'warning'} issue(s)", expanded=severity == "red"):
                for issue in found:
                    st.markdown(f"**{issue.title}**" + (f" · _{issue.section}_" if issue.section else ""))
                    st.write(issue.description)
                    if issue.evidence_snippet:
                        st.code(issue.evidence_snippet)
                    if issue.recommendation:
                        st.caption(issue.recommendation)

        if show_sections:
            with st.expander("Detected sections", expanded=False):
                for s in result.detected_sections:
                    st.markdown(f"**{s.canonical_heading}** (line {s.start_line}, heading: `{s.original_heading}`)")
                    st.text(s.content[:1000])

        tabs = st.tabs(["Corrected draft", "HTML", "Publications"])
        with tabs[0]:
            st.markdown(result.draft.markdown)
        with tabs[1]:
            components.html(result.draft.html, height=900, scrolling=True)
        with tabs[2]:
            st.dataframe([p.to_dict() for p in result.publications], use_container_width=True)

        out = {
            "run_id": run_id,
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
            "inputs": {"name": f.name, "bytes": f.size, "mime": f.type},
            "summary": summary,
            **result.to_dict(),
        }
        c1, c2, c3 = st.columns(3)
        c1.download_button("Export JSON", data=json.dumps(out, ensure_ascii=False, indent=2),
                           file_name=f"{run_id}.json", mime="application/json")
        c2.download_button("Download Markdown", data=result.draft.markdown,
                           file_name=f"{run_id}-biosketch.md", mime="text/markdown")
        c3.download_button("Download HTML", data=result.draft.html,
                           file_name=f"{run_id}-biosketch.html", mime="text/html")
    except Exception as e:
        show_exc("Runtime error", e)
        st.stop()
