from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database.database import Base

# Main models
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    name = Column(String)
    password = Column(String)  # hashed password
    is_admin = Column(Boolean, default=False)  # "admin" claim carried in issued tokens
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    progress = relationship("Progress", back_populates="user", cascade="all, delete-orphan")

class Brand(Base):
    __tablename__ = "brands"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text)
    order = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    trainings = relationship("Training", back_populates="brand")

class Training(Base):
    __tablename__ = "trainings"

    id = Column(Integer, primary_key=True, index=True)
    brand_id = Column(Integer, ForeignKey("brands.id"), index=True)
    title = Column(String, nullable=False)
    description = Column(Text, default="")
    media_files = Column(JSON)  # [{id, type, url, fileName, title}]
    media_url = Column(String, nullable=True)  # Legacy single media URL
    thumbnail_url = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)
    transcript = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    brand = relationship("Brand", back_populates="trainings")
    quizzes = relationship("Quiz", back_populates="training")

class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, index=True)
    training_id = Column(Integer, ForeignKey("trainings.id"), index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    training = relationship("Training", back_populates="quizzes")
    questions = relationship("QuizQuestion", back_populates="quiz")

class QuizQuestion(Base):
    __tablename__ = "quiz_questions"

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), index=True)
    question = Column(Text)
    type = Column(String)  # multiple_choice, true_false

    # Relationships
    quiz = relationship("Quiz", back_populates="questions")
    answers = relationship("QuizAnswer", back_populates="question")

class QuizAnswer(Base):
    __tablename__ = "quiz_answers"

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("quiz_questions.id"), index=True)
    answer_text = Column(Text)
    is_correct = Column(Boolean, default=False)  # never sent to clients

    # Relationships
    question = relationship("QuizQuestion", back_populates="answers")

class QuizSession(Base):
    __tablename__ = "quiz_sessions"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    training_id = Column(Integer, ForeignKey("trainings.id"), index=True)
    answers = Column(JSON)  # {"0": [1], "1": [0, 2], ...}
    created_at = Column(DateTime)
    expires_at = Column(DateTime)

class Progress(Base):
    __tablename__ = "progress"

    id = Column(String, primary_key=True, index=True)  # "{user_id}_{training_id}"
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    training_id = Column(Integer, ForeignKey("trainings.id"), index=True)
    watched = Column(Boolean, default=False)
    score = Column(Integer, nullable=True)
    passed = Column(Boolean, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="progress")
    training = relationship("Training")
