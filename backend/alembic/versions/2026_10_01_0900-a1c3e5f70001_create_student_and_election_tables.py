"""create_student_and_election_tables

Revision ID: a1c3e5f70001
Revises:
Create Date: 2026-10-01 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'a1c3e5f70001'
down_revision = None
branch_labels = None
depends_on = None

student_role = sa.Enum('STUDENT', 'CR', 'FACULTY', 'ADMIN', name='studentrole')
election_status = sa.Enum('OPEN', 'CLOSED', name='electionstatus')
candidate_position = sa.Enum('CR', 'GR', name='candidateposition')


def upgrade() -> None:
    # Idempotent: init_db() may already have created the tables
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = inspector.get_table_names()

    if 'students' not in existing_tables:
        op.create_table('students',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('id_no', sa.String(length=50), nullable=False),
            sa.Column('email', sa.String(length=255), nullable=False),
            sa.Column('name', sa.String(length=255), nullable=False),
            sa.Column('hashed_password', sa.String(length=255), nullable=False),
            sa.Column('role', student_role, nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.Column('class', sa.String(length=20), nullable=True),
            sa.Column('branch', sa.String(length=100), nullable=True),
            sa.Column('section', sa.String(length=20), nullable=True),
            sa.Column('academic_year', sa.String(length=10), nullable=True),
            sa.Column('phone', sa.String(length=20), nullable=True),
            sa.Column('refresh_token_hash', sa.String(length=64), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.Column('last_login', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_students_id_no', 'students', ['id_no'], unique=True)
        op.create_index('ix_students_email', 'students', ['email'], unique=True)
        op.create_index('ix_students_class_role', 'students', ['class', 'role'], unique=False)

    if 'elections' not in existing_tables:
        op.create_table('elections',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('title', sa.String(length=255), nullable=False),
            sa.Column('class_name', sa.String(length=20), nullable=False),
            sa.Column('branch', sa.String(length=100), nullable=False),
            sa.Column('academic_year', sa.String(length=10), nullable=False),
            sa.Column('status', election_status, nullable=False),
            sa.Column('closes_at', sa.DateTime(), nullable=True),
            sa.Column('result_declared', sa.Boolean(), nullable=False),
            sa.Column('is_draw', sa.Boolean(), nullable=False),
            sa.Column('winner_id', sa.String(length=36), nullable=True),
            sa.Column('created_by_id', sa.String(length=36), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.Column('closed_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['winner_id'], ['students.id'], ondelete='SET NULL'),
            sa.ForeignKeyConstraint(['created_by_id'], ['students.id']),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_elections_class_status', 'elections', ['class_name', 'status'], unique=False)

    if 'election_candidates' not in existing_tables:
        op.create_table('election_candidates',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('election_id', sa.String(length=36), nullable=False),
            sa.Column('student_id', sa.String(length=36), nullable=False),
            sa.Column('position', candidate_position, nullable=False),
            sa.Column('votes', sa.Integer(), nullable=False),
            sa.Column('sort_order', sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(['election_id'], ['elections.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['student_id'], ['students.id']),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('election_id', 'student_id', 'position', name='uq_election_candidate_position'),
            sa.CheckConstraint('votes >= 0', name='ck_election_candidate_votes_non_negative')
        )
        op.create_index('ix_election_candidates_election_id', 'election_candidates', ['election_id'], unique=False)

    if 'election_voters' not in existing_tables:
        op.create_table('election_voters',
            sa.Column('election_id', sa.String(length=36), nullable=False),
            sa.Column('student_id', sa.String(length=36), nullable=False),
            sa.Column('voted_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['election_id'], ['elections.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('election_id', 'student_id')
        )

    if 'election_winners' not in existing_tables:
        op.create_table('election_winners',
            sa.Column('election_id', sa.String(length=36), nullable=False),
            sa.Column('position', candidate_position, nullable=False),
            sa.Column('student_id', sa.String(length=36), nullable=False),
            sa.ForeignKeyConstraint(['election_id'], ['elections.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['student_id'], ['students.id']),
            sa.PrimaryKeyConstraint('election_id', 'position')
        )


def downgrade() -> None:
    op.drop_table('election_winners')
    op.drop_table('election_voters')
    op.drop_index('ix_election_candidates_election_id', table_name='election_candidates')
    op.drop_table('election_candidates')
    op.drop_index('ix_elections_class_status', table_name='elections')
    op.drop_table('elections')
    op.drop_index('ix_students_class_role', table_name='students')
    op.drop_index('ix_students_email', table_name='students')
    op.drop_index('ix_students_id_no', table_name='students')
    op.drop_table('students')

    bind = op.get_bind()
    candidate_position.drop(bind, checkfirst=True)
    election_status.drop(bind, checkfirst=True)
    student_role.drop(bind, checkfirst=True)
