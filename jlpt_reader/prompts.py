"""Prompt templates for reading-problem generation and analysis."""
from __future__ import annotations

from jlpt_reader.models import (
    GeneratedProblem,
    Genre,
    PassageFormat,
    Selection,
    Speaker,
    Subtype,
    Topic,
)

SYSTEM_PROMPT = """\
あなたはJLPT N1レベルの日本語読解問題を生成する専門家です。
- 実際のJLPT試験と同じ難易度と形式で問題を作成します
- 文章は自然で論理的な構成を持ち、高度な語彙と文法を使用します
- 問題は本文の深い理解を要求する内容にします
- 回答は必ず指定されたJSON形式のみで返します"""

ANALYSIS_SYSTEM_PROMPT = """\
You are a JLPT N1 teacher. Write every explanation in {language}, never in \
Japanese. Output only one complete JSON object that follows the requested schema."""

SINGLE_SKELETON = """\
{{
  "passage": "本文({char_range})",
  "questions": [
    {{...}}
  ]
}}"""

COMPARATIVE_SKELETON = """\
{{
  "passages": {{
    "A": "文章A({char_range})",
    "B": "文章B({char_range})"
  }},
  "questions": [
    {{...}}
  ]
}}"""

PRACTICAL_SKELETON = """\
{{
  "passages": [
    "案内文",
    "通知文",
    "申請書"
  ],
  "questions": [
    {{...}}
  ]
}}"""

SKELETONS = {
    PassageFormat.SINGLE: SINGLE_SKELETON,
    PassageFormat.COMPARATIVE: COMPARATIVE_SKELETON,
    PassageFormat.PRACTICAL: PRACTICAL_SKELETON,
}

QUESTION_SKELETON = """\
"questions": [
  {{
    "question": "問題文(具体的な質問)",
    "options": ["選択肢1", "選択肢2", "選択肢3", "選択肢4"],
    "correctAnswer": 1,
    "explanation": "解説({language})"
  }}{more}
]"""

RULES = """\
【ルール】
1. 正確なJSON出力のみ返す
2. 他の説明文やマークダウン(```など)は含めない
3. 問題の質を最優先に考える"""

ANALYSIS_PROMPT = """\
あなたはJLPT N1の日本語教師です。以下の読解問題を分析し、学習者のために\
{language}による詳細な解説を提供してください。

【厳守事項】すべての解説は{language}で書いてください。日本語での解説は厳禁です。

【本文】
{passage}

【問題】
{questions}

【メタデータ】
カテゴリー: {category} / テーマ: {topic} / ジャンル: {genre}

【出力形式】
次のJSON形式のみを出力し、他のテキストは一切含めないでください。
{{
  "translation": "本文全体の自然で正確な翻訳({language})",
  "questionExplanations": [
    {{
      "questionNumber": 1,
      "correctAnswer": 1,
      "explanation": "正解の解説({language}、3〜4文)",
      "whyWrong": {{
        "option1": "選択肢1が誤りである具体的な理由({language}、1〜2文)",
        "option2": "選択肢2が誤りである具体的な理由",
        "option3": "選択肢3が誤りである具体的な理由",
        "option4": "選択肢4が誤りである具体的な理由"
      }}
    }}
  ],
  "vocabulary": [
    {{"word": "本文中の重要語", "reading": "ひらがな", "meaning": "意味({language})", "level": "N1", "example": "例文"}}
  ],
  "grammar": [
    {{"pattern": "文法パターン", "meaning": "意味({language})", "example": "例文", "usage": "使い方({language})"}}
  ],
  "keyExpressions": [
    {{"expression": "重要表現", "meaning": "意味({language})", "context": "使用文脈({language})"}}
  ],
  "readingTips": ["読解のコツ({language})"]
}}"""


def _bullets(items: list[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def format_topic(topic: Topic) -> str:
    lines = [f"【テーマ】{topic.name}"]
    if topic.description:
        lines.append(f"【主題説明】{topic.description}")
    if topic.keywords:
        lines.append(f"【キーワード】{'、'.join(topic.keywords)}")
    if topic.cultural_context:
        lines.append(f"【文化的背景】{topic.cultural_context}")
    if topic.controversy_level:
        lines.append(f"【論争性】{topic.controversy_level}")
    return "\n".join(lines)


def format_genre(genre: Genre, length_label: str) -> str:
    lines = [f"【ジャンル】{genre.label or '一般文章'}"]
    if genre.characteristics:
        lines.append(f"【ジャンル特性】\n{_bullets(genre.characteristics)}")
    if genre.vocabulary_focus:
        lines.append(f"【ジャンル語彙】{genre.vocabulary_focus}")
    if genre.grammar_style:
        lines.append(f"【文法スタイル】{genre.grammar_style}")
    if genre.text_structure is not None:
        if genre.text_structure.basic_flow:
            lines.append(f"【文章構造】{genre.text_structure.basic_flow}")
        if genre.text_structure.variation_patterns:
            lines.append(f"【構造バリエーション】\n{_bullets(genre.text_structure.variation_patterns)}")
    for adaptation in genre.length_adaptations.values():
        lines.append(
            f"【{length_label}文章の焦点】\n"
            f"- 重点: {adaptation.focus}\n"
            f"- 構成: {adaptation.structure}\n"
            f"- 問題強調: {adaptation.question_emphasis}"
        )
    if genre.question_types:
        entries = [f"{k}: {v}" if v else k for k, v in genre.question_types.items()]
        lines.append(f"【出題タイプ】\n{_bullets(entries)}")
    if genre.instructions:
        lines.append(f"【作成指針】{genre.instructions}")
    return "\n".join(lines)


def format_subtype(subtype: Subtype) -> str:
    lines = []
    if subtype.label:
        lines.append(f"【タイプ】{subtype.label}")
    if subtype.description:
        lines.append(f"【スタイル】{subtype.description}")
    if subtype.characteristics:
        lines.append(f"【文章特徴】\n{_bullets(subtype.characteristics)}")
    if subtype.example_topics:
        lines.append(f"(参考:{'、'.join(subtype.example_topics)})")
    if subtype.question_focus:
        lines.append(f"【問題焦点】{subtype.question_focus}")
    if subtype.vocabulary_level:
        lines.append(f"【語彙レベル】{subtype.vocabulary_level}")
    return "\n".join(lines)


def format_speaker(speaker: Speaker) -> str:
    lines = ["【話者設定】", f"- 立場: {speaker.label}"]
    for name, value in (
        ("年齢層", speaker.age_range),
        ("文体", speaker.writing_style),
        ("語彙", speaker.vocabulary_level),
        ("語調", speaker.tone_characteristics),
    ):
        if value:
            lines.append(f"- {name}: {value}")
    if speaker.sentence_patterns:
        lines.append(f"- 特徴的な表現: {'、'.join(speaker.sentence_patterns)}")
    lines.append("本文全体を通して、この話者の文体・語調・語彙レベルを一貫して反映すること。")
    return "\n".join(lines)


def format_trap(trap_element: str, level: str) -> str:
    return (
        f"【ひっかけ要素 ({level}実戦レベル)】\n"
        f"- {trap_element}\n"
        "本文の内容と部分的に一致するが正解ではない、もっともらしい誤答選択肢を必ず含めること。"
    )


def format_output(selection: Selection, explanation_language: str) -> str:
    count = selection.question_count
    skeleton = SKELETONS[selection.passage_format].format(char_range=selection.char_range)
    questions = QUESTION_SKELETON.format(
        language=explanation_language,
        more=",\n  {...}" if count > 1 else "",
    )
    return (
        f"【文字数】{selection.char_range}\n"
        f"【問題数】{count}問\n\n"
        f"【JSON形式で回答】\n{skeleton}\n\n"
        f"【各問題の形式】\n{questions}\n\n"
        "【重要な注意事項】\n"
        f"- 問題はちょうど{count}問作成すること\n"
        "- optionsは必ず4つ\n"
        "- correctAnswerは必ず1, 2, 3, 4のいずれかの数字を指定\n"
        f"- explanationは必ず{explanation_language}で記述"
    )


def build_prompt(selection: Selection, explanation_language: str = "韓国語") -> str:
    """Render a Selection into the generation prompt.

    Pure: the same Selection always yields the same text. Each section is
    left out entirely when its data is absent, and sections are separated
    by a single blank line.
    """
    sections = [
        f"以下の条件で{selection.level}レベルの読解問題を生成してください。",
        format_topic(selection.topic),
        format_genre(selection.genre, selection.length_class.label or selection.length_class.key),
    ]
    if selection.subtype is not None:
        sections.append(format_subtype(selection.subtype))
    if selection.speaker is not None:
        sections.append(format_speaker(selection.speaker))
    if selection.trap_element:
        sections.append(format_trap(selection.trap_element, selection.level))
    sections.append(format_output(selection, explanation_language))
    sections.append(RULES)
    return "\n\n".join(s for s in sections if s)


# ── Analysis ─────────────────────────────────────────────────────────────

def format_passages(problem: GeneratedProblem) -> str:
    passages = problem.passages
    if problem.passage_format == PassageFormat.COMPARATIVE:
        return f"【本文A】\n{passages.a}\n\n【本文B】\n{passages.b}"
    if problem.passage_format == PassageFormat.PRACTICAL:
        return "\n\n".join(f"【文書{i}】\n{text}" for i, text in enumerate(passages.texts(), 1))
    return passages.text


def format_questions(problem: GeneratedProblem) -> str:
    blocks = []
    for i, q in enumerate(problem.questions, 1):
        options = "\n".join(f"{j}. {opt}" for j, opt in enumerate(q.options, 1))
        blocks.append(f"問題{i}: {q.question}\n選択肢:\n{options}\n正解: {q.correct_answer}番")
    return "\n\n".join(blocks)


def build_analysis_prompt(
    problem: GeneratedProblem,
    metadata: dict | None,
    explanation_language: str = "韓国語",
) -> str:
    metadata = metadata or {}
    return ANALYSIS_PROMPT.format(
        language=explanation_language,
        passage=format_passages(problem),
        questions=format_questions(problem),
        category=metadata.get("category", ""),
        topic=metadata.get("topic", ""),
        genre=metadata.get("genre", ""),
    )
