# Small catalog used across the test suite: three states, five questions.

CATALOG_DATA = {
    "version": "test",
    "states": [
        {"id": "fear", "name": "Fear", "color": "#7E57C2", "description": "Anticipating loss."},
        {"id": "enthusiasm", "name": "Enthusiasm", "color": "#FFB300", "description": "Eager engagement.",
         "coaching_tips": "Channel the energy into one goal."},
        {"id": "boredom", "name": "Boredom", "color": "#9E9E9E", "description": "Nothing seems worth doing."},
    ],
    "questions": [
        {"id": "fear-1", "question_text": "I worry about what could go wrong.", "harmonic_state": "fear", "order": 1},
        {"id": "fear-2", "question_text": "I avoid taking risks.", "harmonic_state": "fear", "order": 2},
        {"id": "enthusiasm-1", "question_text": "I look forward to new projects.", "harmonic_state": "enthusiasm", "order": 3},
        {"id": "enthusiasm-2", "question_text": "My energy lifts the people around me.", "harmonic_state": "enthusiasm", "order": 4},
        {"id": "boredom-1", "question_text": "My days feel the same.", "harmonic_state": "boredom", "order": 5},
    ],
}
