"""Built-in quizzes. Quizzes are not stored remotely, every organization gets this set."""

from datetime import timedelta

QUIZ_FIXTURES = [
    {
        "id": "quiz1",
        "title": "Mice Handling Procedures",
        "description": "Learn proper handling techniques for laboratory mice",
        "category_id": "cat1",
        "subcategory": "Handling",
        "passing_score": 80,
        "time_limit": 15,
        "is_required": True,
        "created_by": "admin",
        "age": timedelta(0),
        "questions": [
            {
                "id": "q1",
                "question": "What is the proper way to handle a mouse?",
                "options": ["By the tail", "By the scruff", "By the ears", "By the feet"],
                "correct_answer_index": 1,
            },
            {
                "id": "q2",
                "question": "What PPE should be worn when handling mice?",
                "options": ["No PPE required", "Gloves only", "Gloves and lab coat", "Full protective gear including face mask"],
                "correct_answer_index": 2,
            },
        ],
    },
    {
        "id": "quiz2",
        "title": "Equipment Sterilization",
        "description": "Procedures for proper sterilization of laboratory equipment",
        "category_id": "cat2",
        "subcategory": "Equipment Maintenance",
        "passing_score": 75,
        "time_limit": 20,
        "is_required": False,
        "created_by": "supervisor",
        "age": timedelta(days=7),
        "questions": [
            {
                "id": "q1",
                "question": "What temperature should the autoclave reach for proper sterilization?",
                "options": ["100°C", "121°C", "150°C", "200°C"],
                "correct_answer_index": 1,
            },
        ],
    },
    {
        "id": "quiz3",
        "title": "Animal Welfare Regulations",
        "description": "Overview of regulations regarding animal welfare in laboratory settings",
        "category_id": "cat3",
        "subcategory": "Regulations",
        "passing_score": 90,
        "time_limit": 30,
        "is_required": True,
        "created_by": "admin",
        "age": timedelta(days=14),
        "questions": [
            {
                "id": "q1",
                "question": "Which organization sets the standards for animal care in research?",
                "options": ["FDA", "IACUC", "USDA", "All of the above"],
                "correct_answer_index": 3,
            },
        ],
    },
]
