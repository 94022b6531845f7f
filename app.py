import json
import logging
import time
import uuid

import streamlit as st
from PIL import Image
from streamlit_drawable_canvas import st_canvas

# --- 🔗 IMPORT INSTITUTE SETTINGS ---
import client_settings as cs
from config import CLASS_MODES, COURSES, DGCA_SUBJECTS, DOCUMENT_CHECKLIST, PAYMENT_MODES, PAYMENT_RECEIPT
from dispatcher import NotificationError
from models import UploadedFile
from pipeline import process_submission

logging.basicConfig(level=logging.INFO)

st.set_page_config(page_title=cs.APP_TITLE, page_icon=cs.PAGE_ICON)

# --- STATE INITIALIZATION ---
if "form_data" not in st.session_state: st.session_state.form_data = {}
if "stage" not in st.session_state: st.session_state.stage = 0

# --- SIDEBAR ---
with st.sidebar:
    st.header(cs.INSTITUTE_NAME)
    st.caption(cs.TAGLINE)
    steps = ["Welcome", "Details", "Documents", "Review & Submit"]
    progress_value = st.session_state.stage / (len(steps) - 1)
    st.progress(progress_value, text=f"Step: {steps[st.session_state.stage]}")
    st.caption(f"📞 {cs.OFFICE_PHONE}")


def _save_upload(role, uploaded, submission_dir):
    target = submission_dir / f"{role}-{uploaded.name}"
    with open(target, "wb") as f: f.write(uploaded.getbuffer())
    return UploadedFile(role, target, uploaded.type or "", uploaded.name)


def _index(options, value):
    """Position of a saved answer so revisiting the form keeps it selected."""
    return options.index(value) if value in options else 0


def _saved_subjects(data):
    try:
        saved = json.loads(data.get("dgcaSubjects") or "[]")
    except ValueError:
        return []
    return [subject for subject in saved if subject in DGCA_SUBJECTS] if isinstance(saved, list) else []


# ==========================================
# STAGE 0: WELCOME SCREEN
# ==========================================
if st.session_state.stage == 0:
    st.title(f"✈️ Welcome to {cs.INSTITUTE_NAME}")
    st.info("You are about to begin your admission application.")

    st.markdown("""
    ### 📝 What to Expect:
    1. **Fill in your details**, your guardian's details and your course choice.
    2. **Upload your documents**, photo and signatures.
    3. **Review and submit**: you will receive a confirmation email.
    """)

    if st.button("🚀 Start Application"):
        st.session_state.stage = 1
        st.rerun()

# ==========================================
# STAGE 1: APPLICATION DETAILS
# ==========================================
elif st.session_state.stage == 1:
    st.title("📝 Application Details")
    data = st.session_state.form_data

    st.subheader("Student Details")
    c1, c2 = st.columns(2)
    data["fullName"] = c1.text_input("Full Name", data.get("fullName", ""))
    data["dob"] = c2.text_input("Date of Birth (DD-MM-YYYY)", data.get("dob", ""))
    genders = ["Male", "Female", "Other"]
    data["gender"] = c1.selectbox("Gender", genders, index=_index(genders, data.get("gender")))
    data["mobile"] = c2.text_input("Mobile Number", data.get("mobile", ""))
    data["email"] = c1.text_input("Email Address", data.get("email", ""))
    data["medical"] = c2.text_input("Medical Status", data.get("medical", ""))
    data["dgca"] = c1.text_input("DGCA Computer Number", data.get("dgca", ""))
    data["egca"] = c2.text_input("eGCA ID", data.get("egca", ""))
    data["permanentAddress"] = st.text_area("Permanent Address", data.get("permanentAddress", ""))
    data["currentAddress"] = st.text_area("Current Address", data.get("currentAddress", ""))

    st.subheader("Parent / Guardian Details")
    c1, c2 = st.columns(2)
    data["parentName"] = c1.text_input("Parent/Guardian Name", data.get("parentName", ""))
    data["relationship"] = c2.text_input("Relationship", data.get("relationship", ""))
    data["parentMobile"] = c1.text_input("Parent Mobile Number", data.get("parentMobile", ""))
    data["occupation"] = c2.text_input("Occupation", data.get("occupation", ""))

    st.subheader("Academic Details")
    c1, c2 = st.columns(2)
    data["school"] = c1.text_input("School/College Name", data.get("school", ""))
    data["classYear"] = c2.text_input("Current Qualification", data.get("classYear", ""))
    data["board"] = c1.text_input("Board/University", data.get("board", ""))
    data["class12Stream"] = c2.text_input("Class 12 Stream (optional)", data.get("class12Stream", ""))

    st.subheader("Course & Fees")
    c1, c2 = st.columns(2)
    data["course"] = c1.selectbox("Course Applied For", COURSES, index=_index(COURSES, data.get("course")))
    data["modeOfClass"] = c2.selectbox("Mode of Class", CLASS_MODES, index=_index(CLASS_MODES, data.get("modeOfClass")))
    yes_no = ["No", "Yes"]
    data["feesPaid"] = st.radio("Fees Paid", yes_no, index=_index(yes_no, data.get("feesPaid")), horizontal=True)
    if data["feesPaid"] == "Yes":
        c1, c2 = st.columns(2)
        data["paymentMode"] = c1.selectbox("Mode of Payment", PAYMENT_MODES,
                                           index=_index(PAYMENT_MODES, data.get("paymentMode")))
        data["installment"] = c2.text_input("Installments", data.get("installment", ""))
        if data["paymentMode"] != "Cash":
            data["transactionId"] = c1.text_input("Transaction ID", data.get("transactionId", ""))
        data["paymentDate"] = c2.text_input("Payment Date", data.get("paymentDate", ""))

    st.subheader("Aviation Background")
    data["previousFlyingExperience"] = st.radio("Previous Flying Experience", yes_no, horizontal=True,
                                                index=_index(yes_no, data.get("previousFlyingExperience")))
    data["dgcaPapersCleared"] = st.radio("DGCA Papers Cleared", yes_no, horizontal=True,
                                         index=_index(yes_no, data.get("dgcaPapersCleared")))
    if data["dgcaPapersCleared"] == "Yes":
        subjects = st.multiselect("DGCA Subjects Cleared", DGCA_SUBJECTS, default=_saved_subjects(data))
        data["dgcaSubjects"] = json.dumps(subjects)

    if st.button("Continue to Documents ➡️"):
        if data.get("fullName") and data.get("email"):
            st.session_state.stage = 2
            st.rerun()
        else:
            st.warning("Please provide at least your full name and email address.")

# ==========================================
# STAGE 2: DOCUMENTS
# ==========================================
elif st.session_state.stage == 2:
    st.title("📎 Documents")
    st.info("Upload images (JPG/PNG) or PDFs. PDFs are attached to your admission form.")

    checklist = list(DOCUMENT_CHECKLIST)
    if st.session_state.form_data.get("feesPaid") == "Yes":
        checklist.append(PAYMENT_RECEIPT)

    uploads = {}
    for label, role in checklist:
        types = ["jpg", "jpeg", "png"] if role in ("photo", "signature", "parentSignature") else ["jpg", "jpeg", "png", "pdf"]
        uploads[role] = st.file_uploader(label, type=types, key=f"upload_{role}")

    st.write("Or sign below instead of uploading a student signature:")
    sig = st_canvas(stroke_width=2, height=150, key="sig")

    if st.button("Continue to Review ➡️"):
        st.session_state.uploads = {role: f for role, f in uploads.items() if f is not None}
        st.session_state.drawn_signature = sig.image_data
        st.session_state.stage = 3
        st.rerun()

# ==========================================
# STAGE 3: REVIEW & SUBMIT
# ==========================================
elif st.session_state.stage == 3:
    st.title("📋 Review Your Application")
    for key, value in st.session_state.form_data.items():
        if value: st.text_input(key, value=value, disabled=True)
    st.write("Documents: " + (", ".join(st.session_state.uploads) or "none"))

    c1, c2 = st.columns(2)
    if c1.button("✏️ Revise Application"):
        st.session_state.stage = 1
        st.rerun()

    if c2.button("🚀 Submit Application"):
        with st.spinner("Generating your admission form..."):
            submission_dir = cs.UPLOAD_DIR / uuid.uuid4().hex
            submission_dir.mkdir(parents=True, exist_ok=True)

            # 1. Save uploads where the renderer can read them
            files = [_save_upload(role, f, submission_dir) for role, f in st.session_state.uploads.items()]
            drawn = st.session_state.get("drawn_signature")
            if "signature" not in st.session_state.uploads and drawn is not None and drawn[:, :, 3].any():
                sig_path = submission_dir / "signature.png"
                Image.fromarray(drawn.astype("uint8"), "RGBA").save(sig_path)
                files.append(UploadedFile("signature", sig_path, "image/png", "signature.png"))

            # 2. Generate PDF and email it
            try:
                process_submission(st.session_state.form_data, files)
            except NotificationError as exc:
                st.error(f"Your form was generated but the email could not be sent: {exc}")
                st.stop()

            # 3. END SESSION LOGIC
            st.balloons()
            st.success("✅ Application submitted! Check your inbox for a confirmation email.")
            time.sleep(5)
            st.session_state.clear()
            st.rerun()
