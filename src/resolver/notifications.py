"""
Synology Update Checker - Email Notifications
Sends the HTML report through the mail settings configured in DSM.
"""

import logging
import os
import shutil
import socket
import subprocess
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from sources.device import read_key_values

logger = logging.getLogger(__name__)

SMTP_CONF_PATH = Path("/usr/syno/etc/synosmtp.conf")
DEFAULT_SUBJECT = "Synology Update Checker Report"


@dataclass
class SmtpSettings:
    """Event mail settings from DSM (Control Panel > Notification > Email)."""
    server: str = ""
    port: str = ""
    use_ssl: bool = False
    auth: bool = False
    user: str = ""
    password: str = ""
    from_name: str = ""
    from_mail: str = ""
    subject_prefix: str = ""
    recipient: str = ""

    @classmethod
    def load(cls, path: Path = SMTP_CONF_PATH) -> "SmtpSettings":
        values = read_key_values(path)
        return cls(
            server=values.get("eventsmtp", ""),
            port=values.get("eventport", ""),
            use_ssl=values.get("eventusessl", "").lower() in ("yes", "true"),
            auth=values.get("eventauth", "").lower() in ("yes", "true"),
            user=values.get("eventuser", ""),
            password=values.get("eventpasscrypted", ""),
            from_name=values.get("smtp_from_name", ""),
            from_mail=values.get("smtp_from_mail", ""),
            subject_prefix=values.get("eventsubjectprefix", ""),
            recipient=values.get("eventmails", ""),
        )

    @property
    def is_complete(self) -> bool:
        return all((self.server, self.port, self.user, self.password, self.recipient))

    @property
    def from_header(self) -> str:
        if self.from_name:
            return f"From: {self.from_name} <{self.from_mail}>"
        return f"From: {self.from_mail}"


class EmailNotifier:
    """Delivers reports via ssmtp, sendmail or synodsmnotify, whichever exists."""

    def __init__(self, settings: Optional[SmtpSettings] = None):
        self.settings = settings or SmtpSettings.load()

    def _message(self, subject: str, html_body: str) -> str:
        return "\n".join([
            self.settings.from_header,
            f"To: {self.settings.recipient}",
            f"Subject: {self.settings.subject_prefix}{subject}",
            "MIME-Version: 1.0",
            "Content-Type: text/html; charset=UTF-8",
            "",
            html_body,
        ])

    def _ssmtp_config(self) -> str:
        s = self.settings
        lines = [
            f"root={s.from_mail}",
            f"mailhub={s.server}:{s.port}",
            f"hostname={socket.gethostname()}",
            "FromLineOverride=YES",
        ]
        if s.use_ssl:
            lines += ["UseTLS=YES", "UseSTARTTLS=YES"]
        if s.auth:
            if s.user:
                lines.append(f"AuthUser={s.user}")
            if s.password:
                lines.append(f"AuthPass={s.password}")
        return "\n".join(lines) + "\n"

    def _pipe(self, command: list[str], message: str) -> bool:
        try:
            result = subprocess.run(
                command,
                input=message,
                capture_output=True,
                text=True,
                timeout=60,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError) as e:
            logger.error(f"{command[0]} failed: {e}")
            return False
        if result.returncode != 0:
            logger.error(f"{command[0]} exited {result.returncode}: {result.stderr.strip()}")
        return result.returncode == 0

    def send(self, html_body: str, text_body: str, subject: str = DEFAULT_SUBJECT) -> bool:
        """
        Send the report.

        Returns:
            True if a mail command accepted the message
        """
        if not self.settings.is_complete:
            logger.error("SMTP server or recipient not configured in DSM "
                         "(Control Panel > Notification > Email)")
            return False

        message = self._message(subject, html_body)

        if shutil.which("ssmtp"):
            fd, conf_path = tempfile.mkstemp(prefix="ssmtp_", suffix=".conf")
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(self._ssmtp_config())
                return self._pipe(["ssmtp", "-C", conf_path, self.settings.recipient], message)
            finally:
                os.unlink(conf_path)

        if shutil.which("sendmail"):
            return self._pipe(["sendmail", "-t"], message)

        if shutil.which("synodsmnotify"):
            full_subject = f"{self.settings.subject_prefix}{subject}"
            return self._pipe(["synodsmnotify", "@administrators", full_subject, text_body], "")

        logger.error("No mail command available (ssmtp, sendmail, or synodsmnotify)")
        return False


def save_debug_copy(html: str, debug_dir: Path) -> Path:
    """Write the rendered email to debug_dir/email_<timestamp>.html."""
    debug_dir.mkdir(parents=True, exist_ok=True)
    path = debug_dir / f"email_{datetime.now().strftime('%Y%m%d_%H%M%S')}.html"
    path.write_text(html)
    logger.debug(f"HTML email saved to: {path}")
    return path
