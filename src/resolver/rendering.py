"""
Synology Update Checker - Report Rendering
Plain-text tables for the terminal and an HTML version for email.
"""

from html import escape
from typing import Optional

from resolver.models import DeviceIdentity
from resolver.report import ReportRow, ResolutionReport

RULE = "============================================="
ROW = "{:<30} | {:<15} | {:<15} | {:<6}"
SEPARATOR = "{:<30}|{:<15}|{:<15}|{:<6}".format("-" * 31, "-" * 17, "-" * 17, "-" * 8)
LINK_ROW = "{:<30} | {:<30} | {:<30}"

HTML_STYLE = """
    body { font-family: Arial, sans-serif; font-size: 14px; line-height: 1.6; background-color: #f5f5f5; padding: 20px; }
    .container { background-color: white; padding: 20px; border-radius: 5px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }
    h2 { color: #333; border-bottom: 2px solid #0066cc; padding-bottom: 5px; }
    table { border-collapse: collapse; width: 100%; margin-bottom: 20px; }
    th { border: 1px solid #ddd; padding: 8px; text-align: left; font-weight: bold; }
    td { border: 1px solid #ddd; padding: 4px; }
    tr:nth-child(even) { background-color: #f9f9f9; }
    a { color: #0066cc; text-decoration: none; }
    a:hover { text-decoration: underline; }
"""


def update_flag(available: bool) -> str:
    return "X" if available else "-"


def _section(title: str) -> list[str]:
    return ["", "", "", title, RULE, ""]


def system_info_lines(device: DeviceIdentity) -> list[str]:
    rows = [
        ("Product", device.product),
        ("Model", device.model),
        ("Architecture", device.architecture),
        ("Platform Name", device.platform_codename),
        ("Operating System", device.os_variant),
        ("Version", str(device.installed_os_version)),
    ]
    lines = ["", "System Information", RULE]
    lines += [f"{label:<30} | {value}" for label, value in rows]
    return lines


def _table_lines(header: str, rows: list[ReportRow]) -> list[str]:
    lines = [ROW.format(header, "Installed", "Latest Version", "Update"), SEPARATOR]
    for row in rows:
        lines.append(ROW.format(row.name, row.installed, row.latest, update_flag(row.update_available)))
        if row.update_available and row.url:
            lines += ["", f"Download Link: {row.url}"]
    return lines


def os_lines(report: ResolutionReport) -> list[str]:
    row = report.os_row()
    if row is None:
        return []
    return _section("Operating System Update Check") + _table_lines("Operating System", [row])


def package_lines(report: ResolutionReport) -> list[str]:
    return _section("Package Update Check") + _table_lines("Package", report.rows())


def download_link_lines(report: ResolutionReport) -> list[str]:
    updates = report.items_with_updates
    if not updates:
        return []
    lines = _section("Download Links for Available Updates:")
    lines.append(LINK_ROW.format("Application", "Version", "URL"))
    lines.append(LINK_ROW.format("-" * 30, "-" * 30, "-" * 30))
    for result in updates:
        lines.append(LINK_ROW.format(result.name, str(result.latest_version), result.url))
    return lines


def summary_lines(report: ResolutionReport) -> list[str]:
    return [
        "",
        f"Total installed packages: {report.total_installed}",
        f"Total packages with updates available: {report.updates_available}",
    ]


def render_text(report: ResolutionReport, include_packages: bool = True) -> str:
    """Full terminal report."""
    lines = system_info_lines(report.device) + os_lines(report)
    if include_packages:
        lines += package_lines(report) + download_link_lines(report) + summary_lines(report)
    return "\n".join(line.rstrip() for line in lines)


def _html_table(title: str, color: str, headers: list[str], rows: list[list[str]]) -> str:
    width = 60 // max(len(headers) - 1, 1)
    head = "".join(
        f"<th style='background-color: {color}; width: {40 if i == 0 else width}%;'>{escape(h)}</th>"
        for i, h in enumerate(headers)
    )
    body = "".join("<tr>" + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>" for row in rows)
    return f"<h2>{escape(title)}</h2><table><tr>{head}</tr>{body}</table>"


def _html_result_row(row: ReportRow) -> list[str]:
    latest = escape(row.latest)
    if row.update_available:
        icon = "<span style='font-size: 14px;'>&#128260;</span>"
        if row.url:
            latest = f"<a href='{escape(row.url, quote=True)}'>{latest}</a>"
    else:
        icon = "<span style='font-size: 14px; color: #51CF66;'>&#9989;</span>"
    return [escape(row.name), escape(row.installed), latest, icon]


def render_html(report: ResolutionReport, include_packages: bool = True) -> str:
    """HTML fragment with the system, OS and package tables."""
    device = report.device
    parts = [_html_table(
        "1. System Information", "#90EE90", ["Property", "Value"],
        [[escape(label), escape(str(value))] for label, value in (
            ("Product", device.product),
            ("Model", device.model),
            ("Architecture", device.architecture),
            ("Platform Name", device.platform_codename),
            ("Operating System", device.os_variant),
            ("Version", device.installed_os_version),
        )],
    )]

    os_row = report.os_row()
    if os_row is not None:
        parts.append(_html_table(
            "2. Operating System", "#ADD8E6",
            ["Operating System", "Installed", "Latest Version", "Update"],
            [_html_result_row(os_row)],
        ))

    if include_packages:
        parts.append(_html_table(
            "3. Packages", "#FFA500",
            ["Package", "Installed", "Latest Version", "Update"],
            [_html_result_row(row) for row in report.rows()],
        ))
        parts.append(f"<p style='margin-top: 20px; font-weight: bold;'>"
                     f"Total installed packages: {report.total_installed}</p>")
        parts.append(f"<p style='font-weight: bold;'>"
                     f"Total packages with updates available: {report.updates_available}</p>")
    return "".join(parts)


def html_document(fragment: str, title: Optional[str] = None) -> str:
    title_tag = f"<title>{escape(title)}</title>" if title else ""
    return (
        "<!DOCTYPE html>\n<html>\n<head>\n<meta charset=\"UTF-8\">\n"
        f"{title_tag}<style>{HTML_STYLE}</style>\n</head>\n<body>\n"
        f"<div class=\"container\">\n{fragment}\n</div>\n</body>\n</html>"
    )
