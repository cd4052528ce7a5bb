"""Prompt templates.

Each builder returns the full user message for one request. Commit lists
use the `hash|subject|body` line format.
"""

from __future__ import annotations

from datetime import date
from typing import Literal

__all__ = [
    "NOTES_FORMATS",
    "NotesFormat",
    "assist_prompt",
    "notes_prompt",
    "suggest_prompt",
    "validate_prompt",
]

NotesFormat = Literal["markdown", "confluence", "confluence-md"]

NOTES_FORMATS: tuple[NotesFormat, ...] = ("markdown", "confluence", "confluence-md")


def suggest_prompt(*, current_version: str, commits: str) -> str:
    return f"""You are an expert in semantic versioning and conventional commits.

Analyze the following commits and decide which version bump is needed (major, minor or patch).

Current version: {current_version}

Commits:
{commits}

Instructions:
1. Review each commit following conventional commits (feat:, fix:, BREAKING CHANGE:, etc.)
2. Breaking changes (! or BREAKING CHANGE:) mean a major bump
3. New features (feat:) mean a minor bump
4. Only fixes (fix:) or other changes mean a patch bump
5. Answer ONLY with JSON in this shape:

{{
  "bump_type": "major|minor|patch",
  "suggested_version": "X.Y.Z",
  "reasoning": "Short explanation of the bump type",
  "highlights": ["feature 1", "fix 1", "breaking change 1"]
}}

Reply with the JSON only, no markdown and no extra explanation."""


_MARKDOWN_LAYOUT = """[Short description of the release in 1-2 sentences]

## 🚀 Features
- Feature description

## 🐛 Bug Fixes
- Fix description

## 💥 Breaking Changes
⚠️ **IMPORTANT**: [Breaking change description]

## 📝 Other Changes
- Other relevant changes"""


def _markdown_notes(version: str, commits: str) -> str:
    return f"""You are an expert in release documentation and technical communication.

Write professional release notes for version {version} based on these commits:

{commits}

Instructions:
1. Start with a short description (1-2 sentences) of the main changes
2. Group changes into: Features, Bug Fixes, Breaking Changes, Other Changes
3. Use clean markdown and do NOT include an H1 title
4. Keep every item clear and concise
5. Highlight breaking changes with ⚠️
6. Use emojis: 🚀 features, 🐛 fixes, 💥 breaking, 📝 docs

Expected layout (no H1 title):

{_MARKDOWN_LAYOUT}

Output only the markdown content, without quotes or code fences. Do NOT include "# Release v{version}"."""


def _confluence_notes(version: str, commits: str, today: date) -> str:
    return f"""You are an expert in release documentation and technical communication.

Write a professional release summary in CONFLUENCE WIKI MARKUP for version {version} based on these commits:

{commits}

Instructions:
1. Use Confluence wiki markup, NOT markdown
2. Start with an info panel holding an executive summary
3. Group changes by category under h2 headings
4. Use bullet lists (-)
5. Use emojis for categories: 🚀 features, 🐛 fixes, 💥 breaking, 📝 docs
6. Put breaking changes inside a warning panel
7. Use {{{{monospace}}}} for inline code
8. Keep the summary executive and concise (2-3 sentences)

Expected layout:

{{info:title=Release v{version} - Executive Summary}}
[2-3 sentences on the most important changes]
{{info}}

h2. 🚀 New Features
- Feature description

h2. 🐛 Bug Fixes
- Fix description

h2. 💥 Breaking Changes
{{warning:title=Changes Requiring Action}}
⚠️ *IMPORTANT*: [Breaking change and the action to take]
{{warning}}

h2. 📝 Other Changes
- Internal refactors and documentation updates

h2. ℹ️ Additional Information
*Date*: {today.isoformat()}
*Version*: {version}
*Environment*: [Staging/Production]

Output only the Confluence wiki markup, without extra explanation."""


def _confluence_md_notes(version: str, commits: str, today: date) -> str:
    return f"""You are an expert in release documentation and technical communication.

Write a professional release summary in MARKDOWN, ready to paste into Confluence, for version {version} based on these commits:

{commits}

Instructions:
1. Use clean, professional markdown
2. Start with a highlighted executive summary block quote
3. Group changes by category under ## headings
4. Use bullet lists (-)
5. Use emojis: 🚀 features, 🐛 fixes, 💥 breaking, 📝 docs, ⚡ performance, 🔧 chores
6. Put breaking changes in a warning block quote
7. Use backticks for inline code where needed
8. Keep the summary executive and concise (2-3 sentences)

Expected layout:

> **📋 Executive Summary**
>
> [2-3 sentences on the most important changes]

## 🚀 New Features

- Feature description

## 🐛 Bug Fixes

- Fix description with context

## 💥 Breaking Changes

> **⚠️ IMPORTANT - Changes Requiring Action**
>
> [Breaking change and the action to take]

## ⚡ Performance

- Optimization

## 📝 Other Changes

- Documentation, refactors, dependency updates

---

**ℹ️ Release Information**

- **Version:** {version}
- **Date:** {today.strftime("%d/%m/%Y")}
- **Environment:** [Staging/Production]

Output only the markdown, without code fences or extra explanation."""


def notes_prompt(
    *,
    version: str,
    commits: str,
    fmt: NotesFormat = "markdown",
    today: date | None = None,
) -> str:
    day = today if today is not None else date.today()
    match fmt:
        case "markdown":
            return _markdown_notes(version, commits)
        case "confluence":
            return _confluence_notes(version, commits, day)
        case "confluence-md":
            return _confluence_md_notes(version, commits, day)
        case _:
            raise AssertionError(f"unexpected notes format: {fmt}")


def validate_prompt(*, commits: str, diff: str) -> str:
    return f"""You are an expert in quality assurance and release management.

Analyze the following changes and detect possible problems before the release:

Commits:
{commits}

Diff (last 500 lines):
{diff}

Check:
1. Are there breaking changes not documented with BREAKING CHANGE?
2. Do the commits follow conventional commits?
3. Are there code changes without matching tests (.test. or .spec. files)?
4. Are there TODOs or FIXMEs in the code?
5. Is there console.log, debugger or other debugging code?
6. Is the version in the version files consistent?

Answer in this format:

STATUS: [OK | WARNINGS | ERRORS]

[For warnings or errors, list each one on a line starting with -]

Example:
STATUS: WARNINGS
- Breaking change in function X not documented with BREAKING CHANGE:
- Component Y changed without tests
- 2 console.log calls in file Z

If everything is fine, answer only:
STATUS: OK"""


def assist_prompt(*, question: str, cwd: str, branch: str, last_commit: str) -> str:
    return f"""You are an assistant specialised in release management and git workflows.

The user is working on a release and needs help.

User question: {question}

Current repository:
- Directory: {cwd}
- Current branch: {branch}
- Last commit: {last_commit}

Give a useful, concise and actionable answer. If commands need to be run, state them clearly."""
