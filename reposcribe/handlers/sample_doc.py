# reposcribe/handlers/sample_doc.py
from ..models import Repository

_JS = ("JavaScript", "TypeScript")


def _prerequisites(lang: str | None) -> str:
    if lang in _JS:
        return "- Node.js (version 14 or higher)\n- npm or yarn package manager"
    if lang == "Python":
        return "- Python (version 3.8 or higher)"
    if lang == "Java":
        return "- Java Development Kit (JDK 11 or higher)"
    return f"- The appropriate runtime for {lang or 'this project'}"


def _install(lang: str | None) -> str:
    if lang in _JS:
        return "```bash\nnpm install\n# or\nyarn install\n```"
    if lang == "Python":
        return "```bash\npip install -r requirements.txt\n```"
    return "```bash\n# Install project dependencies according to your build system\n```"


def _usage(lang: str | None) -> str:
    if lang in _JS:
        return "To start the development server:\n\n```bash\nnpm run dev\n# or\nyarn dev\n```"
    if lang == "Python":
        return "To run the application:\n\n```bash\npython main.py\n```"
    return "To run the application:\n\n```bash\n# Run according to your project setup\n```"


def _test_cmd(lang: str | None) -> str:
    if lang in _JS:
        return "npm test"
    if lang == "Python":
        return "python -m pytest"
    return "# Run tests according to your testing framework"


def render(repo: Repository) -> str:
    """Template README used when no AI backend is wired in."""
    lang = repo.language
    parts = [f"# {repo.name}", ""]
    if repo.description:
        parts += ["## Description", repo.description, ""]
    parts += [
        "## Overview",
        "",
        f"This repository contains a {lang or 'multi-language'} project.",
        "",
        "## Getting Started",
        "",
        "### Prerequisites",
        "",
        _prerequisites(lang),
        "",
        "### Installation",
        "",
        "1. Clone the repository:",
        "```bash",
        f"git clone {repo.html_url}",
        f"cd {repo.name}",
        "```",
        "",
        "2. Install dependencies:",
        _install(lang),
        "",
        "### Usage",
        "",
        _usage(lang),
        "",
        "## Testing",
        "",
        "```bash",
        _test_cmd(lang),
        "```",
        "",
        "## Contributing",
        "",
        "1. Fork the repository",
        "2. Create your feature branch (`git checkout -b feature/AmazingFeature`)",
        "3. Commit your changes (`git commit -m 'Add some AmazingFeature'`)",
        "4. Push to the branch (`git push origin feature/AmazingFeature`)",
        "5. Open a Pull Request",
        "",
        "## Support",
        "",
        f"- Check the [Issues]({repo.html_url}/issues) page",
        "- Create a new issue if your question isn't already answered",
        "",
        "---",
        "",
        "*This documentation was automatically generated by RepoScribe AI.*",
    ]
    return "\n".join(parts)
