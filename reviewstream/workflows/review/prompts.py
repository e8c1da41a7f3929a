"""Prompt construction for the review_agent node."""

TRUNCATION_MARKER = "\n... (truncated for length)"

REVIEW_JSON_STRUCTURE = """{{
  "summary": {{
    "totalFiles": {total_files},
    "overallQuality": "excellent|good|fair|poor",
    "mainLanguages": ["language1", "language2"],
    "architecturePattern": "description of architecture/pattern used",
    "keyFindings": "Brief overview of main findings"
  }},
  "criticalIssues": [
    {{
      "severity": "critical|high|medium|low",
      "category": "security|performance|reliability|maintainability",
      "title": "Issue title",
      "description": "Detailed description",
      "files": ["file1.ts", "file2.js"],
      "recommendation": "How to fix this issue"
    }}
  ],
  "potentialBugs": [
    {{
      "file": "filename",
      "line": "line number or range",
      "issue": "Description of potential bug",
      "severity": "high|medium|low",
      "suggestion": "How to fix it"
    }}
  ],
  "fileReviews": [
    {{
      "file": "filename",
      "score": "A|B|C|D|F",
      "strengths": ["strength1", "strength2"],
      "issues": ["issue1", "issue2"],
      "suggestions": ["suggestion1", "suggestion2"]
    }}
  ],
  "recommendations": {{
    "immediate": ["Action items that should be addressed immediately"],
    "shortTerm": ["Improvements for next sprint/iteration"],
    "longTerm": ["Architectural or strategic improvements"]
  }},
  "metrics": {{
    "codeComplexity": "low|medium|high",
    "testCoverage": "estimate or 'unknown'",
    "documentationQuality": "excellent|good|fair|poor",
    "codeConsistency": "excellent|good|fair|poor"
  }}
}}"""

FOCUS_AREAS = """Please provide a thorough analysis following the JSON structure above. Focus on:
1. Code quality, security, and best practices
2. Potential bugs and reliability issues
3. Performance considerations
4. Maintainability and readability
5. Architecture and design patterns
6. Testing and documentation
7. Any custom rules specified above

Return ONLY the JSON response, no additional text."""


def truncate_content(content: str, limit: int) -> str:
    """Cut content at ``limit`` characters, marking the cut."""
    if len(content) <= limit:
        return content
    return content[:limit] + TRUNCATION_MARKER


def format_rules(rules: list[str]) -> str:
    if not rules:
        return "- No custom rules specified"
    return "\n".join(f"- {rule}" for rule in rules)


def build_review_prompt(
    owner: str,
    repo: str,
    branch: str,
    rules: list[str],
    files: list[dict],
    max_chars_per_file: int = 8000,
) -> str:
    """Build the single review request sent to the chat model."""
    file_list = "\n".join(f"- {f['filename']} ({len(f['content'])} chars)" for f in files)

    sections = [
        f"You are an expert code reviewer analyzing the repository {owner}/{repo} "
        f"(branch: {branch}).",
        f"CUSTOM RULES TO FOLLOW:\n{format_rules(rules)}",
        "Please provide a comprehensive code review in the following JSON structure:\n\n"
        + REVIEW_JSON_STRUCTURE.format(total_files=len(files)),
        f"FILES TO REVIEW:\n{file_list}",
        "--- DETAILED FILE CONTENTS ---",
    ]
    prompt = "\n\n".join(sections)

    for f in files:
        content = truncate_content(f["content"], max_chars_per_file)
        prompt += f"\n\n=== {f['filename']} ===\n{content}\n"

    return prompt + "\n\n" + FOCUS_AREAS
