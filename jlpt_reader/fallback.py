"""Canned problems served when generation fails.

One per passage format so the client always receives the shape it asked
for. Deterministic: no sampling, no network.
"""
from __future__ import annotations

import copy

from jlpt_reader.models import (
    ComparativePassages,
    GeneratedProblem,
    LengthClass,
    PassageFormat,
    PracticalPassages,
    Question,
    SinglePassage,
)

SINGLE_FALLBACK = GeneratedProblem(
    passages=SinglePassage(
        "現代社会において、技術革新は目覚ましい発展を遂げている。"
        "しかしながら、技術の進歩が必ずしも人間の幸福に直結するとは限らない。"
        "むしろ、技術に依存しすぎることで、人間本来の能力や感性が衰退する危険性も指摘されている。"
        "したがって、技術と人間性のバランスを保つことが、今後の課題として挙げられる。"
    ),
    questions=[
        Question(
            question="この文章の主張として最も適切なものはどれか。",
            options=[
                "技術革新は人間の幸福に必ず貢献する",
                "技術の進歩と人間性のバランスが重要である",
                "技術に依存することは完全に避けるべきだ",
                "現代社会では技術革新が不要である",
            ],
            correct_answer=2,
            explanation=(
                "본문은 마지막 문장에서 「技術と人間性のバランスを保つことが課題」라고 말하고 있으므로 "
                "2번이 정답입니다. 1번은 「必ずしも〜とは限らない」와 모순되고, "
                "3번과 4번은 본문보다 지나치게 단정적입니다."
            ),
        ),
    ],
)

COMPARATIVE_FALLBACK = GeneratedProblem(
    passages=ComparativePassages(
        a=(
            "在宅勤務の普及によって、通勤に費やしていた時間を自己研鑽や家族との時間に充てられるようになった。"
            "働く場所を自ら選べることは、個人の生活の質を高めるだけでなく、地方への人口分散にもつながると考えられる。"
            "今後は、成果によって評価する仕組みを整えることが企業に求められるだろう。"
        ),
        b=(
            "在宅勤務には確かに利点があるが、同僚との何気ない会話から生まれる発想が失われつつあることは見過ごせない。"
            "組織における信頼関係は、対面での交流を通じて少しずつ築かれるものである。"
            "在宅勤務を全面的に否定するわけではないが、出社の意義を改めて見直す必要があるのではないか。"
        ),
    ),
    questions=[
        Question(
            question="AとBの筆者が共通して認めていることは何か。",
            options=[
                "在宅勤務には一定の利点がある",
                "在宅勤務は地方の活性化に欠かせない",
                "対面での交流は不要になりつつある",
                "企業は出社を義務づけるべきである",
            ],
            correct_answer=1,
            explanation=(
                "A는 재택근무의 장점을 적극적으로 주장하고, B도 「確かに利点があるが」라고 장점을 인정하고 있으므로 "
                "1번이 정답입니다. 2번은 A만의 주장이고, 3번과 4번은 어느 필자도 말하지 않았습니다."
            ),
        ),
    ],
)

PRACTICAL_FALLBACK = GeneratedProblem(
    passages=PracticalPassages([
        (
            "【市民講座のご案内】\n"
            "市立図書館では、地域の歴史をテーマにした連続講座を開催いたします。"
            "受講を希望される方は、所定の申込書に必要事項をご記入のうえ、10月31日までに図書館窓口へご提出ください。"
            "なお、定員を超えた場合は抽選とさせていただきます。"
        ),
        (
            "【変更のお知らせ】\n"
            "会場の改修工事に伴い、第3回の講座は市民会館2階の会議室にて実施いたします。"
            "その他の回の会場に変更はございません。"
        ),
    ]),
    questions=[
        Question(
            question="講座を受講したい人がしなければならないことはどれか。",
            options=[
                "市民会館で申込書を受け取る",
                "10月31日までに申込書を図書館に出す",
                "第3回の講座に必ず出席する",
                "抽選の結果を図書館に問い合わせる",
            ],
            correct_answer=2,
            explanation=(
                "안내문에 「申込書に必要事項をご記入のうえ、10月31日までに図書館窓口へご提出ください」라고 "
                "되어 있으므로 2번이 정답입니다. 회장 변경은 제3회 강좌에만 해당하며 신청 방법과는 관계없습니다."
            ),
        ),
    ],
)

FALLBACKS = {
    PassageFormat.SINGLE: SINGLE_FALLBACK,
    PassageFormat.COMPARATIVE: COMPARATIVE_FALLBACK,
    PassageFormat.PRACTICAL: PRACTICAL_FALLBACK,
}


def fallback_problem(shape: PassageFormat | LengthClass | None = None) -> GeneratedProblem:
    """Return a fresh copy of the canned problem for *shape*."""
    if isinstance(shape, LengthClass):
        shape = shape.passage_format
    problem = FALLBACKS.get(shape or PassageFormat.SINGLE, SINGLE_FALLBACK)
    return copy.deepcopy(problem)
