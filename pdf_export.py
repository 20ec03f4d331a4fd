from __future__ import annotations
from datetime import date
from io import BytesIO
from typing import List
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from analytics import Achievement

HEADER_STYLE = [
    ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
    ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
]


def progress_report_to_pdf(
    today: date,
    stats: dict,
    subject_rows: List[dict],
    activity: List[dict],
    history_rows: List[dict],
    achievement_items: List[Achievement],
) -> bytes:
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=letter,
        leftMargin=40,
        rightMargin=40,
        topMargin=40,
        bottomMargin=40,
    )
    styles = getSampleStyleSheet()
    elems = []

    elems.append(Paragraph(f"StudyPace progress: {today.isoformat()}", styles["Title"]))
    elems.append(Spacer(1, 10))
    elems.append(Paragraph(
        f"Subjects: {stats['total_subjects']} | Due today: {stats['due_today']} "
        f"| Streak: {stats['streak']} day(s) | Today: {stats['today_done']} / {stats['goal']}",
        styles["Normal"],
    ))
    unlocked = [a.title for a in achievement_items if a.unlocked]
    elems.append(Paragraph(
        f"Achievements: {', '.join(unlocked) or 'None yet'}",
        styles["Normal"],
    ))
    elems.append(Spacer(1, 12))

    if subject_rows:
        elems.append(Paragraph("Subjects", styles["Heading3"]))
        table_data = [["Subject", "Exam", "Next review", "Interval", "Total", "Recent", "Due"]]
        for r in subject_rows:
            table_data.append([
                r["name"],
                r["exam_date"].isoformat(),
                r["next_review_date"].isoformat(),
                f"{r['interval_days']}d",
                str(r["total_sessions"]),
                str(r["recent_sessions"]),
                "Yes" if r["due"] else "No",
            ])
        table = Table(table_data, hAlign="LEFT")
        table.setStyle(TableStyle(HEADER_STYLE + [("ALIGN", (3, 1), (5, -1), "RIGHT")]))
        elems.append(table)
        elems.append(Spacer(1, 12))

    if activity:
        elems.append(Paragraph(f"Activity (last {len(activity)} days)", styles["Heading3"]))
        act_data = [["Day", "Sessions"]]
        for a in activity:
            act_data.append([a["day"].strftime("%a %Y-%m-%d"), str(a["count"])])
        act_table = Table(act_data, hAlign="LEFT", colWidths=[150, 60])
        act_table.setStyle(TableStyle(HEADER_STYLE + [("ALIGN", (1, 1), (1, -1), "RIGHT")]))
        elems.append(act_table)
        elems.append(Spacer(1, 12))

    if history_rows:
        elems.append(Paragraph("Recent sessions", styles["Heading3"]))
        hist_data = [["Day", "Time", "Subject", "Minutes", "Difficulty", "Note"]]
        for h in history_rows:
            hist_data.append([
                h["day"].isoformat(),
                h["time"],
                h["subject_name"],
                str(h["minutes"]),
                h["difficulty"] or "-",
                h["note"],
            ])
        hist_table = Table(hist_data, hAlign="LEFT", colWidths=[70, 40, 120, 50, 60, 160])
        hist_table.setStyle(TableStyle(HEADER_STYLE))
        elems.append(hist_table)

    doc.build(elems)
    return buf.getvalue()
