from pydantic import BaseModel

from collabquest.models.profile import SkillAssessment, UserProfile


class Quiz(BaseModel):
    skill: str
    question: str
    options: list[str]


class QuizAnswer(BaseModel):
    """Body of POST /sessions/{sid}/profile/assessments."""
    skill: str
    selected: str


# skill -> (question, correct answer, options)
SKILL_QUIZZES: dict[str, tuple[str, str, list[str]]] = {
    "React": ("Which of these is a built-in React Hook?", "useState",
              ["useState", "useFetch", "useGlobal", "useStore"]),
    "Python": ("Which keyword is used to define a function in Python?", "def",
               ["func", "define", "def", "function"]),
    "Figma": ("What is the primary format for sharing Figma prototypes?", "Link",
              ["SVG", "PDF", "Link", "PNG"]),
    "Node.js": ("Which module is used to create a web server in Node.js?", "http",
                ["fs", "http", "path", "url"]),
    "SQL": ("Which clause is used to filter rows in a SELECT statement?", "WHERE",
            ["WHERE", "GROUP BY", "HAVING", "ORDER BY"]),
    "Product Strategy": ('What does "MVP" stand for in Product Management?', "Minimum Viable Product",
                         ["Most Valuable Player", "Minimum Viable Product", "Major View Point", "Model View Presenter"]),
    "UI Design": ('What does the "A" in the accessibility standard WCAG stand for?', "Accessibility",
                  ["Accessibility", "Artistic", "Adaptability", "Aesthetics"]),
    "Copywriting": ('What is the "Call to Action" primarily intended for?', "Conversion",
                    ["Description", "Conversion", "Navigation", "SEO"]),
}


def get_quiz(skill: str) -> Quiz:
    question, _, options = SKILL_QUIZZES[skill]
    return Quiz(skill=skill, question=question, options=options)


def grade_answer(profile: UserProfile, skill: str, selected: str) -> UserProfile:
    """Score one quiz answer (100 or 0) and replace any earlier result for the skill."""
    _, answer, _ = SKILL_QUIZZES[skill]
    score = 100 if selected == answer else 0
    assessments = [a for a in profile.skill_assessments if a.skill != skill]
    assessments.append(SkillAssessment(skill=skill, score=score))
    return profile.model_copy(update={"skill_assessments": assessments})
