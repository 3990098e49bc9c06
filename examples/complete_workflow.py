"""
Complete workflow example: Exam → Proctored Session → Result → Feedback

Demonstrates end-to-end integration of all system components:
1. Store an official exam for the active quarter
2. Start an official session for a student
3. Answer every question and finish (score, then feedback)
4. Start a second session and lose focus until lockout
5. Inspect the stored results and the review lock

Feedback needs OPENAI_API_KEY; without it the fallback text is attached.
"""

import asyncio
import sys
import tempfile
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.agents.feedback_orchestrator import FeedbackOrchestrator
from src.config import config, setup_logging, token_tracker
from src.errors import StudentLocked
from src.models.assessment_result import SessionMode
from src.models.question import Question
from src.models.student import StudentProfile
from src.orchestrator import AssessmentOrchestrator
from src.question_bank import QuestionBank
from src.utils.attention import AttentionSignal, ScriptedAttentionSource
from src.utils.persistence import AssessmentResultStore


EXAM = [
    Question(
        question_id="hist-q1-1",
        citation="“A terra era de quem a cultivava, mas o senhor dela era o dono.”",
        text="O trecho descreve uma característica central de qual sistema?",
        options=["Escravismo antigo", "Feudalismo", "Capitalismo industrial", "Socialismo", "Mercantilismo"],
        correct_index=1,
        explanation="A relação de suserania e vassalagem sobre a terra define o feudalismo.",
        difficulty="easy",
    ),
    Question(
        question_id="hist-q1-2",
        text="A Magna Carta (1215) limitou o poder de qual figura?",
        options=["O papa", "O rei inglês", "Os barões", "O imperador", "Os comerciantes"],
        correct_index=1,
        explanation="A Magna Carta impôs limites ao poder de João Sem Terra.",
        difficulty="medium",
    ),
    Question(
        question_id="hist-q1-3",
        text="As Cruzadas contribuíram diretamente para:",
        options=[
            "o fim do comércio no Mediterrâneo",
            "o renascimento comercial e urbano",
            "a unificação da Itália",
            "a Reforma Protestante imediata",
            "o isolamento da Europa",
        ],
        correct_index=1,
        explanation="As rotas abertas reativaram o comércio e as cidades.",
        difficulty="medium",
    ),
    Question(
        question_id="hist-q1-4",
        text="A Peste Negra no século XIV provocou:",
        options=[
            "aumento da população camponesa",
            "escassez de mão de obra e revoltas",
            "fortalecimento da servidão em toda a Europa",
            "o fim da Igreja Católica",
            "a expansão marítima portuguesa no mesmo ano",
        ],
        correct_index=1,
        explanation="A mortalidade elevou o valor do trabalho e desencadeou revoltas.",
        difficulty="medium",
    ),
    Question(
        question_id="hist-q1-5",
        visual_description="Iluminura de um castelo cercado por campos e uma aldeia.",
        text="A imagem representa a organização espacial típica do:",
        options=["burgo", "feudo", "quilombo", "polis", "latifúndio colonial"],
        correct_index=1,
        explanation="O castelo senhorial cercado de terras cultivadas é a imagem do feudo.",
        difficulty="hard",
    ),
]


def answer_all(session, option_index):
    for i in range(len(session.questions)):
        session.choose(option_index)
        if i < session.last_index:
            session.advance()


async def main():
    setup_logging()
    workdir = Path(tempfile.mkdtemp(prefix="assessment-demo-"))

    # ==================== Step 1: Official Exam ====================
    print("=" * 60)
    print("STEP 1: Storing Official Exam")
    print("=" * 60)

    bank = QuestionBank(exams_dir=workdir / "exams", topics_dir=workdir / "topics")
    path = bank.save_official_exam("História", "1ª", config.schedule.active_quarter, EXAM)
    print(f"✓ Exam stored at {path}")
    print()

    store = AssessmentResultStore(results_dir=workdir / "results")
    orchestrator = AssessmentOrchestrator(
        question_bank=bank,
        store=store,
        feedback=FeedbackOrchestrator(),
        notifier=lambda notice: print(f"\n🚫 {notice.title}\n  {notice.message}"),
    )
    student = StudentProfile(student_id="student-demo-001", full_name="Ana Souza", grade="1ª")

    # ==================== Step 2: Official Session ====================
    print("=" * 60)
    print("STEP 2: Official Session")
    print("=" * 60)

    source = ScriptedAttentionSource()
    session = orchestrator.start_session(student, "História", SessionMode.OFFICIAL, attention_source=source)
    print(f"✓ Session {session.session_id} started ({len(session.questions)} questions)")

    # One application switch costs two strikes
    source.switch_away()
    print(f"  Strikes after one app switch: {session.strikes}/{session.monitor.threshold}")

    answer_all(session, option_index=1)
    session.select_answer(4, 0)
    session.finish()

    result = session.result
    print(f"✓ Finished: {result.score}/{result.total_questions} (nota {result.display_grade:.1f})")
    print("  Waiting for feedback...")
    feedback = await orchestrator.wait_for_feedback()
    print(f"\n📝 Feedback:\n  {feedback}")
    print()

    # ==================== Step 3: Lockout ====================
    print("=" * 60)
    print("STEP 3: Integrity Lockout")
    print("=" * 60)

    source = ScriptedAttentionSource()
    session = orchestrator.start_session(student, "História", SessionMode.OFFICIAL, attention_source=source)
    session.choose(1)
    for _ in range(config.integrity.strike_threshold):
        source.emit(AttentionSignal.BLUR)

    print(f"\n✓ Phase: {session.phase.value}, score: {session.result.score}")

    try:
        orchestrator.start_session(student, "História", SessionMode.MOCK)
    except StudentLocked as e:
        print(f"✓ New session refused: {e}")
    print()

    # ==================== Step 4: Stored Results ====================
    print("=" * 60)
    print("STEP 4: Stored Results")
    print("=" * 60)

    for record in store.load_results_by_student(student.student_id):
        print(
            f"  {record['result_id']}: {record['phase']} "
            f"score={record['score']} flagged={record['flagged_for_review']}"
        )
    print(f"  Locked for review: {store.is_student_locked(student.student_id)}")
    print()
    print(token_tracker.summary())


if __name__ == "__main__":
    asyncio.run(main())
