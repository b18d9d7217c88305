"""Initial schema

Revision ID: 0001
Revises: 
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create custom types
    user_role = postgresql.ENUM('admin', 'student', 'mahasiswa', name='user_role')
    user_role.create(op.get_bind())

    message_role = postgresql.ENUM('user', 'assistant', name='message_role')
    message_role.create(op.get_bind())

    user_role = postgresql.ENUM(name='user_role', create_type=False)
    message_role = postgresql.ENUM(name='message_role', create_type=False)

    # Create profiles table; ids are issued by the auth service
    op.create_table('profiles',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('role', user_role, nullable=False, server_default='mahasiswa'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )

    # Create classes (jobsheets) table
    op.create_table('classes',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('admin_id', sa.String(length=36), nullable=False),
        sa.Column('file_url', sa.String(length=500), nullable=True),
        sa.Column('extracted_text', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['admin_id'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('modules',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('class_id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('file_url', sa.String(length=500), nullable=True),
        sa.Column('extracted_text', sa.Text(), nullable=True),
        sa.Column('uploaded_by', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['uploaded_by'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('quizzes',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('class_id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('time_limit', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.String(length=36), nullable=False),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('quiz_questions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('quiz_id', sa.String(length=36), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('option_a', sa.Text(), nullable=False),
        sa.Column('option_b', sa.Text(), nullable=False),
        sa.Column('option_c', sa.Text(), nullable=False),
        sa.Column('option_d', sa.Text(), nullable=False),
        sa.Column('option_e', sa.Text(), nullable=True),
        sa.Column('correct_answer', sa.String(length=1), nullable=False),
        sa.Column('points', sa.Float(), nullable=False, server_default='1'),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint("correct_answer IN ('A', 'B', 'C', 'D', 'E')", name='ck_quiz_questions_correct_answer'),
        sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('quiz_submissions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('quiz_id', sa.String(length=36), nullable=False),
        sa.Column('student_id', sa.String(length=36), nullable=False),
        sa.Column('score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_points', sa.Float(), nullable=False, server_default='0'),
        sa.Column('submitted_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('quiz_id', 'student_id', name='uq_quiz_submission_student')
    )

    op.create_table('quiz_answers',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('submission_id', sa.String(length=36), nullable=False),
        sa.Column('question_id', sa.String(length=36), nullable=False),
        sa.Column('student_answer', sa.String(length=1), nullable=True),
        sa.Column('is_correct', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('points_earned', sa.Float(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['submission_id'], ['quiz_submissions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['question_id'], ['quiz_questions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('jobsheet_assignments',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('jobsheet_id', sa.String(length=36), nullable=False),
        sa.Column('student_id', sa.String(length=36), nullable=False),
        sa.Column('nim', sa.String(length=50), nullable=False),
        sa.Column('file_url', sa.String(length=500), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=True),
        sa.Column('grade', sa.Float(), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('graded_by', sa.String(length=36), nullable=True),
        sa.Column('graded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.CheckConstraint('grade IS NULL OR (grade >= 0 AND grade <= 100)', name='ck_jobsheet_assignments_grade'),
        sa.ForeignKeyConstraint(['jobsheet_id'], ['classes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['profiles.id'], ),
        sa.ForeignKeyConstraint(['graded_by'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('jobsheet_submissions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('module_id', sa.String(length=36), nullable=False),
        sa.Column('student_id', sa.String(length=36), nullable=False),
        sa.Column('file_url', sa.String(length=500), nullable=False),
        sa.Column('grade', sa.Float(), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('graded_by', sa.String(length=36), nullable=True),
        sa.Column('graded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.CheckConstraint('grade IS NULL OR (grade >= 0 AND grade <= 100)', name='ck_jobsheet_submissions_grade'),
        sa.ForeignKeyConstraint(['module_id'], ['modules.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['profiles.id'], ),
        sa.ForeignKeyConstraint(['graded_by'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('ai_chat_sessions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('submission_id', sa.String(length=36), nullable=False),
        sa.Column('student_id', sa.String(length=36), nullable=False),
        sa.Column('question_id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('last_message_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['submission_id'], ['quiz_submissions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['profiles.id'], ),
        sa.ForeignKeyConstraint(['question_id'], ['quiz_questions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('ai_chat_messages',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('session_id', sa.String(length=36), nullable=False),
        sa.Column('role', message_role, nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['session_id'], ['ai_chat_sessions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )

    # Create indexes
    op.create_index('idx_profiles_email', 'profiles', ['email'])
    op.create_index('idx_classes_admin_id', 'classes', ['admin_id'])
    op.create_index('idx_modules_class_id', 'modules', ['class_id'])
    op.create_index('idx_quizzes_class_id', 'quizzes', ['class_id'])
    op.create_index('idx_quiz_questions_quiz_id', 'quiz_questions', ['quiz_id'])
    op.create_index('idx_quiz_submissions_quiz_id', 'quiz_submissions', ['quiz_id'])
    op.create_index('idx_quiz_submissions_student_id', 'quiz_submissions', ['student_id'])
    op.create_index('idx_quiz_answers_submission_id', 'quiz_answers', ['submission_id'])
    op.create_index('idx_jobsheet_assignments_jobsheet_id', 'jobsheet_assignments', ['jobsheet_id'])
    op.create_index('idx_jobsheet_assignments_student_id', 'jobsheet_assignments', ['student_id'])
    op.create_index('idx_jobsheet_submissions_module_id', 'jobsheet_submissions', ['module_id'])
    op.create_index('idx_jobsheet_submissions_student_id', 'jobsheet_submissions', ['student_id'])
    op.create_index('idx_ai_chat_sessions_submission_id', 'ai_chat_sessions', ['submission_id'])
    op.create_index('idx_ai_chat_sessions_student_id', 'ai_chat_sessions', ['student_id'])
    op.create_index('idx_ai_chat_messages_session_id', 'ai_chat_messages', ['session_id'])


def downgrade() -> None:
    # Drop indexes
    op.drop_index('idx_ai_chat_messages_session_id', table_name='ai_chat_messages')
    op.drop_index('idx_ai_chat_sessions_student_id', table_name='ai_chat_sessions')
    op.drop_index('idx_ai_chat_sessions_submission_id', table_name='ai_chat_sessions')
    op.drop_index('idx_jobsheet_submissions_student_id', table_name='jobsheet_submissions')
    op.drop_index('idx_jobsheet_submissions_module_id', table_name='jobsheet_submissions')
    op.drop_index('idx_jobsheet_assignments_student_id', table_name='jobsheet_assignments')
    op.drop_index('idx_jobsheet_assignments_jobsheet_id', table_name='jobsheet_assignments')
    op.drop_index('idx_quiz_answers_submission_id', table_name='quiz_answers')
    op.drop_index('idx_quiz_submissions_student_id', table_name='quiz_submissions')
    op.drop_index('idx_quiz_submissions_quiz_id', table_name='quiz_submissions')
    op.drop_index('idx_quiz_questions_quiz_id', table_name='quiz_questions')
    op.drop_index('idx_quizzes_class_id', table_name='quizzes')
    op.drop_index('idx_modules_class_id', table_name='modules')
    op.drop_index('idx_classes_admin_id', table_name='classes')
    op.drop_index('idx_profiles_email', table_name='profiles')

    # Drop tables
    op.drop_table('ai_chat_messages')
    op.drop_table('ai_chat_sessions')
    op.drop_table('jobsheet_submissions')
    op.drop_table('jobsheet_assignments')
    op.drop_table('quiz_answers')
    op.drop_table('quiz_submissions')
    op.drop_table('quiz_questions')
    op.drop_table('quizzes')
    op.drop_table('modules')
    op.drop_table('classes')
    op.drop_table('profiles')

    # Drop custom types
    op.execute('DROP TYPE IF EXISTS message_role')
    op.execute('DROP TYPE IF EXISTS user_role')
