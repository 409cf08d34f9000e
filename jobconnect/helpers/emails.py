from datetime import datetime
from html import escape

_STYLE = """
      body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
      .container { max-width: 600px; margin: 20px auto; padding: 20px; border: 1px solid #ddd; border-radius: 8px; }
      .header { background-color: %s; color: white; padding: 10px; text-align: center; border-radius: 8px 8px 0 0; }
      .content { padding: 20px; }
      .footer { margin-top: 20px; font-size: 12px; text-align: center; color: #aaa; }
      .button { display: inline-block; padding: 10px 20px; background-color: #007bff; color: white; text-decoration: none; border-radius: 5px; }
"""


def _layout(header: str, header_color: str, body: str, link: str, link_label: str) -> str:
    return f"""<html>
  <head><style>{_STYLE % header_color}</style></head>
  <body>
    <div class="container">
      <div class="header"><h1>{header}</h1></div>
      <div class="content">
        {body}
        <a href="{link}" class="button">{link_label}</a>
      </div>
      <div class="footer"><p>&copy; {datetime.utcnow().year} JobConnect. All rights reserved.</p></div>
    </div>
  </body>
</html>"""


def application_confirmation(name: str, job_title: str, company_name: str, frontend_url: str) -> str:
    body = (
        f"<h2>Hi {escape(name)},</h2>"
        f"<p>We've successfully received your application for the <strong>{escape(job_title)}</strong> "
        f"position at <strong>{escape(company_name)}</strong>.</p>"
        "<p>Your profile is now under review. You can track the status of all your applications on your dashboard.</p>"
    )
    return _layout("Application Received!", "#28a745", body, f"{frontend_url}/my-applications", "View My Applications")


def job_posted(employer_name: str, job_title: str, company_name: str, frontend_url: str) -> str:
    body = (
        f"<h2>Congratulations, {escape(employer_name)}!</h2>"
        f"<p>Your job posting for <strong>{escape(job_title)}</strong> at <strong>{escape(company_name)}</strong> "
        "is now live on JobConnect.</p>"
        "<p>We'll notify you as soon as applications start coming in.</p>"
    )
    return _layout("Job Posted Successfully!", "#007bff", body, f"{frontend_url}/my-jobs", "Go to My Jobs")
