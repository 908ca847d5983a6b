
import os
import json
import html
import datetime

HTML_REPORT_NAME = "Repair_Report.html"


def write_json_report(report_data, report_path):
    """Writes the run report as JSON. Returns (success, path_or_error)."""
    try:
        report_dir = os.path.dirname(report_path)
        if report_dir and not os.path.exists(report_dir):
            os.makedirs(report_dir)
        with open(report_path, "w", encoding="utf-8") as f:
            json.dump(report_data, f, indent=2, ensure_ascii=False)
        return True, report_path
    except OSError as e:
        return False, f"Could not write report {report_path}: {e}"


def generate_html_report(report_data, target_dir):
    """
    Generates a readable HTML page from a repair report dict
    (the output of RepairReport.to_dict()).
    """
    total = report_data.get("total_scanned", 0)
    changed = report_data.get("total_changed", 0)
    errors = report_data.get("errors", [])
    mode_text = "Changes written (originals backed up)" if report_data.get("write") else "Dry run: no files were modified"

    if errors:
        status_color = "#e74c3c" # Red
        status_text = f"{len(errors)} file(s) could not be processed"
    elif changed:
        status_color = "#f1c40f" # Yellow
        status_text = f"{changed} file(s) needed repairs"
    else:
        status_color = "#2ecc71" # Green
        status_text = "Every page is already clean"

    rows_html = ""
    for record in report_data.get("records", []):
        if not record.get("changed") and not record.get("error"):
            continue
        repairs = record.get("repairs", {})
        badges = ""
        for key, label in [("fixups_applied", "Encoding"), ("closes_inserted", "Closes Added"),
                           ("orphan_closes_dropped", "Orphans Dropped"), ("angles_escaped", "Escaped")]:
            if repairs.get(key):
                badges += f'<span class="badge">{repairs[key]} {label}</span>'
        if record.get("error"):
            badges += f'<span class="badge badge-error">{html.escape(record["error"])}</span>'

        rows_html += f"""
        <div class="file-card">
            <div class="file-header">
                <h3>{html.escape(record.get("file", ""))}</h3>
                <div class="badges">{badges}</div>
            </div>
        </div>
        """

    if not rows_html:
        rows_html = """
        <div class="empty-state">
            <h2>No Repairs Needed</h2>
            <p>No mojibake, unbalanced tags or stray angle brackets were found.</p>
        </div>
        """

    html_content = f"""
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>HTML Repair Report</title>
    <style>
        :root {{
            --primary: #4b3190;
            --bg: #f5f6fa;
            --text: #2f3640;
            --border: #dcdde1;
        }}
        body {{
            font-family: 'Segoe UI', Roboto, Helvetica, Arial, sans-serif;
            background-color: var(--bg);
            color: var(--text);
            margin: 0;
            line-height: 1.6;
        }}
        .header {{
            background: var(--primary);
            color: white;
            padding: 40px 20px;
            text-align: center;
        }}
        .header h1 {{ margin: 0; font-size: 2.2em; }}
        .container {{ max-width: 900px; margin: 30px auto 40px; padding: 0 20px; }}
        .status-text {{ font-size: 1.4em; font-weight: bold; color: {status_color}; text-align: center; }}
        .stats-grid {{
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(200px, 1fr));
            gap: 15px;
            margin: 20px 0 30px;
        }}
        .stat-card {{
            background: white;
            padding: 20px;
            border-radius: 8px;
            text-align: center;
            box-shadow: 0 2px 5px rgba(0,0,0,0.05);
        }}
        .stat-val {{ font-size: 2em; font-weight: bold; color: var(--primary); }}
        .file-card {{
            background: white;
            border-radius: 8px;
            box-shadow: 0 2px 5px rgba(0,0,0,0.05);
            margin-bottom: 15px;
        }}
        .file-header {{
            padding: 15px 20px;
            display: flex;
            justify-content: space-between;
            align-items: center;
        }}
        .file-header h3 {{ margin: 0; font-size: 1.05em; color: #333; }}
        .badge {{
            padding: 4px 8px;
            border-radius: 4px;
            font-size: 0.8em;
            font-weight: bold;
            color: white;
            background: var(--primary);
            margin-left: 5px;
        }}
        .badge-error {{ background: #e74c3c; }}
        .empty-state {{ text-align: center; padding: 40px; background: white; border-radius: 8px; }}
        .footer {{ text-align: center; margin-top: 50px; color: #7f8c8d; font-size: 0.9em; }}
    </style>
</head>
<body>
    <div class="header">
        <h1>HTML Repair Report</h1>
        <p>Generated on {datetime.datetime.now().strftime("%B %d, %Y")}</p>
    </div>

    <div class="container">
        <div class="status-text">{status_text}</div>
        <p style="text-align: center;">{mode_text}</p>

        <div class="stats-grid">
            <div class="stat-card">
                 <div class="stat-val">{total}</div>
                 <div>Files Scanned</div>
            </div>
            <div class="stat-card">
                 <div class="stat-val">{changed}</div>
                 <div>Files Changed</div>
            </div>
            <div class="stat-card">
                 <div class="stat-val">{len(errors)}</div>
                 <div>Errors</div>
            </div>
        </div>

        <h2 style="margin-bottom: 20px; color: #2c3e50;">Repaired Files</h2>

        {rows_html}
    </div>

    <div class="footer">
        <p>Run started {html.escape(str(report_data.get("timestamp", "")))}</p>
    </div>
</body>
</html>
    """

    report_path = os.path.join(target_dir, HTML_REPORT_NAME)
    try:
        with open(report_path, "w", encoding="utf-8") as f:
            f.write(html_content)
    except OSError as e:
        return False, f"Could not write HTML report {report_path}: {e}"
    return True, report_path
