"""Behavioural instructions that teach AI agents how to use the memory tools.

The protocol is returned by status responses and shown in wake-up output, so
an agent learns its workflow from the tool itself rather than from a system
prompt.
"""

from __future__ import annotations

import textwrap

_INDENT = "   "

_HEADER = (
    "MEMPAL MEMORY PROTOCOL (for AI agents)\n\n"
    "You have persistent project memory through mempal. "
    "Apply these rules in every session:"
)

# Each rule is a heading followed by paragraphs; a paragraph given as a
# (lead, bullets) pair is rendered as a bullet list.
_RULES: tuple[tuple[str, tuple[object, ...]], ...] = (
    (
        "0. FIRST-TIME SETUP (once per session)",
        (
            "Call mempal_status() once when a session starts to learn which wings "
            "exist and how many drawers each holds. Only filter mempal_search by "
            "wing or room after that response (or the user) has given you the exact "
            'wing name; a guessed wing such as "engineering" or "backend" quietly '
            "returns nothing. If unsure, leave wing and room unset and search globally.",
        ),
    ),
    (
        "1. WAKE UP",
        (
            "Clients with SessionStart hooks (such as Claude Code) preload recent "
            "wing/room context above. Others (Codex, Cursor, plain MCP clients) do "
            "NOT; for them step 0 is the wake-up. The drawer_ids and source_file "
            "citations in results point at real files on disk and can be trusted.",
        ),
    ),
    (
        "2. VERIFY BEFORE ASSERTING",
        (
            "Call mempal_search before stating facts about the project "
            '("we chose X", "we use Y", "the auth flow works like Z"). When the '
            "question is about THIS project, do not answer from general knowledge.",
        ),
    ),
    (
        "3. QUERY WHEN UNCERTAIN",
        (
            "If the user asks about earlier decisions or history "
            '("why did we...", "last time we...", "what did we decide about..."), '
            "pass the question to mempal_search instead of relying on the "
            "conversation alone.",
        ),
    ),
    (
        "3a. TRANSLATE QUERIES TO ENGLISH",
        (
            "The default embedding model (model2vec, a multilingual distillation) "
            "still works best on English, so non-English queries can miss results. "
            "When the user writes in Chinese, Japanese, Korean or another language, "
            "translate the meaning of the question into English before using it as "
            "the mempal_search query. Translate the intent, do NOT transliterate: "
            '"它不再是一个高级原型" becomes "no longer just an advanced prototype".',
        ),
    ),
    (
        "4. SAVE AFTER DECISIONS",
        (
            "When the conversation settles a decision, especially one with reasons, "
            "persist it with mempal_ingest, rationale included. Use the current "
            "project's wing and let mempal choose the room.",
        ),
    ),
    (
        "5. CITE EVERYTHING",
        (
            "Each mempal_search result carries a drawer_id and a source_file. Quote "
            'them in answers ("drawer X from /path/to/file says we decided..."). '
            "Citations are what tell memory apart from hallucination.",
        ),
    ),
    (
        "5a. KEEP A DIARY",
        (
            "When a session's work is done you may note behavioural observations "
            'with mempal_ingest, wing="agent-diary" and room set to your agent name '
            '("claude", "codex"). Start entries with OBSERVATION:, LESSON: or '
            "PATTERN:. Diary entries let later sessions of any agent learn from past "
            'behaviour, e.g. "LESSON: read the repo docs before writing '
            'infrastructure code."',
        ),
    ),
    (
        "8. PARTNER AWARENESS (cross-agent cowork)",
        (
            "When the user mentions the partner coding agent "
            '("Codex 那边...", "ask Claude what...", "partner is working on...", '
            '"handoff..."), read the partner\'s LIVE session with '
            "mempal_peek_partner rather than searching drawers. Live conversation "
            "is transient and lives in session logs, not in mempal: peek for the "
            "partner's CURRENT state, mempal_search for CRYSTALLIZED past decisions, "
            'and keep the two apart. Pass tool="auto" to infer the partner from '
            "your MCP client, or name it (claude / codex).",
        ),
    ),
    (
        "9. DECISION CAPTURE (what goes into mempal)",
        (
            "mempal_ingest stores decisions, not chat logs. A drawer is warranted "
            "once the user and you (perhaps with partner input via peek) reach a "
            "firm conclusion: an architectural choice, a naming or API contract, a "
            "bug's root cause and fix, a spec change. Do NOT ingest brainstorming, "
            "exploration in progress or raw conversation. If the partner shaped the "
            "decision (you called mempal_peek_partner this turn), put the partner's "
            "key points in the drawer so it stands alone, and cite the partner's "
            "session file in source_file next to your own citation.",
        ),
    ),
    (
        "10. COWORK PUSH (proactive handoff to partner)",
        (
            "Call mempal_cowork_push when you want the partner agent to see "
            "something on its next user turn. It is a SEND primitive, separate from "
            "mempal_peek_partner (READ live state) and mempal_ingest (PERSIST "
            "decisions). Typical use: a status update, blocker or in-flight "
            "decision that is too transient for a drawer yet too important to "
            "leave for the user to relay.",
            "Delivery happens at the next UserPromptSubmit, NOT in real time. The "
            "partner's TUI does not redraw on outside events; when the user next "
            "types a prompt in the partner session, the UserPromptSubmit hook "
            "drains the inbox and injects the messages through the normal hook "
            "stdout protocol.",
            'Addressing: pass target_tool="claude" or target_tool="codex", or omit '
            "it to infer the partner from the MCP client identity. Pushing to "
            "yourself is rejected.",
            (
                "When NOT to push:",
                (
                    "Content that should also persist: use mempal_ingest (drawers)",
                    "Waking the partner mid-turn: not supported (next submit only)",
                    "Sending to several targets: one target per push",
                    "Rich content or attachments: plain text bodies only (≤ 8 KB)",
                ),
            ),
            "On an InboxFull error, STOP pushing and wait for the partner to drain. "
            "Do NOT retry; it will only fail again.",
        ),
    ),
)

_TOOLS: tuple[tuple[str, str], ...] = (
    ("mempal_status", "current state, this protocol and the AAAK format spec"),
    ("mempal_search", "semantic search with wing/room filters and citations"),
    ("mempal_ingest", "save a drawer (wing required, room optional, importance 0-5)"),
    ("mempal_delete", "soft-delete a drawer by ID"),
    ("mempal_taxonomy", "list or edit routing keywords"),
    ("mempal_kg", "knowledge graph: add/query/invalidate/timeline/stats of triples"),
    ("mempal_tunnels", "find rooms shared across wings"),
    ("mempal_peek_partner", "read the partner agent's live session (Claude ↔ Codex), read-only"),
    ("mempal_cowork_push", "send a short handoff message to the partner agent"),
)

_FOOTER = (
    "Key invariant: mempal keeps raw text verbatim, and every search result leads\n"
    "back to a source_file. If you cannot cite the source, you are guessing."
)


def _render_paragraph(paragraph: object) -> str:
    if isinstance(paragraph, tuple):
        lead, bullets = paragraph
        return "\n".join([_INDENT + lead, *(f"{_INDENT}- {item}" for item in bullets)])
    return textwrap.fill(
        str(paragraph),
        width=78,
        initial_indent=_INDENT,
        subsequent_indent=_INDENT,
        break_on_hyphens=False,
        break_long_words=False,
    )


def _render_rule(heading: str, paragraphs: tuple[object, ...]) -> str:
    body = "\n\n".join(_render_paragraph(paragraph) for paragraph in paragraphs)
    return f"{heading}\n{body}"


def _render_protocol() -> str:
    width = max(len(name) for name, _ in _TOOLS) + 1
    tools = "\n".join(f"  {name.ljust(width)}— {text}" for name, text in _TOOLS)
    sections = [
        _HEADER,
        *(_render_rule(heading, paragraphs) for heading, paragraphs in _RULES),
        f"TOOLS:\n{tools}",
        _FOOTER,
    ]
    return "\n\n".join(sections)


MEMORY_PROTOCOL = _render_protocol()

DEFAULT_IDENTITY_HINT = (
    "(no identity yet — write ~/.mempal/identity.txt to describe your role, "
    "projects and working style)"
)