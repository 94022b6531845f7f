# config.py

# -------------------------------------------------
# 📋 THE FORM: "Student Admission Form"
# -------------------------------------------------
# Each section lists (label, form field) pairs in print order. Conditional
# rows (stream, payment details, DGCA subjects) are added by backend.py.
FORM_SECTIONS = {
    "student": {
        "title": "1. STUDENT DETAILS",
        "fields": [
            ("Full Name", "fullName"),
            ("Date of Birth", "dob"),
            ("Gender", "gender"),
            ("Mobile Number", "mobile"),
            ("Email Address", "email"),
            ("Permanent Address", "permanentAddress"),
            ("Current Address", "currentAddress"),
            ("DGCA Computer Number", "dgca"),
            ("eGCA ID", "egca"),
            ("Medical Status", "medical"),
        ],
    },
    "parent": {
        "title": "2. PARENT / GUARDIAN DETAILS",
        "fields": [
            ("Parent/Guardian Name", "parentName"),
            ("Relationship", "relationship"),
            ("Mobile Number", "parentMobile"),
            ("Occupation", "occupation"),
        ],
    },
    "academic": {
        "title": "3. ACADEMIC DETAILS",
        "fields": [
            ("School/College Name", "school"),
            ("Current Qualification", "classYear"),
            ("Board/University", "board"),
        ],
    },
    "course": {"title": "4. COURSE DETAILS", "fields": [("Course Applied For", "course")]},
    "fees": {"title": "5. FEE STATUS", "fields": [("Fees Paid", "feesPaid")]},
    "aviation": {
        "title": "6. AVIATION BACKGROUND",
        "fields": [
            ("Previous Flying Experience", "previousFlyingExperience"),
            ("DGCA Papers Cleared", "dgcaPapersCleared"),
        ],
    },
    "documents": {"title": "7. DOCUMENTS SUBMITTED", "fields": []},
}

# (label, upload role) pairs for the "Documents Submitted" checklist
DOCUMENT_CHECKLIST = [
    ("Aadhaar Card", "aadhar"),
    ("10th Marksheet", "marksheet10"),
    ("12th Marksheet", "marksheet12"),
    ("Passport Size Photo", "photo"),
    ("Student Signature", "signature"),
    ("Parent/Guardian Signature", "parentSignature"),
]
PAYMENT_RECEIPT = ("Payment Receipt", "paymentReceipt")

# Roles drawn inside the form itself, never appended as full pages
INLINE_IMAGE_ROLES = {"photo", "signature", "parentSignature"}

# Portal choices
COURSES = [
    "CPL Ground Classes",
    "ATPL Ground Classes",
    "DGCA Exam Preparation",
    "Cabin Crew Training",
]
CLASS_MODES = ["Offline", "Online", "Hybrid"]
PAYMENT_MODES = ["Online", "UPI", "Bank Transfer", "Cheque", "Cash"]
DGCA_SUBJECTS = [
    "Air Navigation",
    "Meteorology",
    "Air Regulations",
    "Technical General",
    "Technical Specific",
    "RTR",
]
