"""create_analysis_tables

Revision ID: 3b1f0c9a7d21
Revises:
Create Date: 2026-10-19 09:12:44.518230

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b1f0c9a7d21'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


job_type = sa.Enum('SINGLE', 'BATCH', 'REANALYSIS', name='jobtype')
job_status = sa.Enum('PENDING', 'PROCESSING', 'COMPLETED', 'FAILED', name='jobstatus')
content_domain = sa.Enum(
    'LANGUAGES', 'MATHEMATICS', 'SCIENCES', 'HISTORY_SOCIAL', 'ARTS_MUSIC',
    'TECHNOLOGY', 'MEDICINE_HEALTH', 'LAW_GOVERNMENT', 'BUSINESS_ECONOMICS',
    'TEST_PREP', 'HOBBIES', 'UNKNOWN',
    name='contentdomain',
)
complexity_level = sa.Enum('ELEMENTARY', 'INTERMEDIATE', 'ADVANCED', 'EXPERT', name='complexitylevel')
card_type = sa.Enum('BASIC', 'CLOZE', 'QA', 'DEFINITION', name='cardtype')
analysis_method = sa.Enum('RULE_BASED', 'HYBRID', name='analysismethod')
analysis_status = sa.Enum('COMPLETED', 'NEEDS_LLM', name='analysisstatus')


def upgrade() -> None:
    """Create the job queue and the versioned analysis table."""
    op.create_table(
        'analysis_jobs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('job_type', job_type, nullable=False),
        sa.Column('card_id', sa.String(), nullable=True),
        sa.Column('deck_id', sa.String(), nullable=True),
        sa.Column('status', job_status, nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('attempt_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_attempts', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('locked_by', sa.String(length=64), nullable=True),
        sa.Column('locked_at', sa.DateTime(), nullable=True),
        sa.Column('total_cards', sa.Integer(), nullable=True),
        sa.Column('processed_cards', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('failed_cards', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.String(), nullable=True),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_analysis_jobs_status', 'analysis_jobs', ['status'])
    op.create_index('ix_analysis_jobs_card_id', 'analysis_jobs', ['card_id'])
    op.create_index('ix_analysis_jobs_deck_id', 'analysis_jobs', ['deck_id'])
    op.create_index('ix_analysis_jobs_locked_by', 'analysis_jobs', ['locked_by'])
    op.create_index('ix_analysis_jobs_user_id', 'analysis_jobs', ['user_id'])

    # Claim order over pending rows, and the stale sweep over processing rows
    op.execute("""
        CREATE INDEX ix_analysis_jobs_claim_order ON analysis_jobs (priority DESC, created_at ASC)
        WHERE status = 'PENDING'
    """)
    op.execute("""
        CREATE INDEX ix_analysis_jobs_locked_at ON analysis_jobs (locked_at)
        WHERE status = 'PROCESSING'
    """)

    op.create_table(
        'card_analysis',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('card_id', sa.String(length=64), nullable=False),
        sa.Column('analysis_version', sa.Integer(), nullable=False),
        sa.Column('detected_domain', content_domain, nullable=False),
        sa.Column('domain_confidence', sa.Float(), nullable=False),
        sa.Column('secondary_domains', sa.JSON(), nullable=True),
        sa.Column('extracted_concepts', sa.JSON(), nullable=True),
        sa.Column('complexity_level', complexity_level, nullable=False),
        sa.Column('complexity_score', sa.Float(), nullable=False),
        sa.Column('front_word_count', sa.Integer(), nullable=False),
        sa.Column('back_word_count', sa.Integer(), nullable=False),
        sa.Column('detected_card_type', card_type, nullable=False),
        sa.Column('detected_language', sa.String(length=10), nullable=False),
        sa.Column('analysis_method', analysis_method, nullable=False),
        sa.Column('status', analysis_status, nullable=False),
        sa.Column('raw_analysis', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('card_id', 'analysis_version', name='unique_card_version'),
        sa.CheckConstraint('domain_confidence >= 0 AND domain_confidence <= 1', name='ck_domain_confidence'),
        sa.CheckConstraint('complexity_score >= 0 AND complexity_score <= 1', name='ck_complexity_score'),
    )
    op.create_index('ix_card_analysis_card_id', 'card_analysis', ['card_id'])
    op.create_index('ix_card_analysis_detected_domain', 'card_analysis', ['detected_domain'])
    op.create_index('ix_card_analysis_complexity_level', 'card_analysis', ['complexity_level'])
    op.create_index('ix_card_analysis_status', 'card_analysis', ['status'])


def downgrade() -> None:
    """Drop the analysis tables and their enum types."""
    op.drop_table('card_analysis')
    op.execute("DROP INDEX IF EXISTS ix_analysis_jobs_locked_at")
    op.execute("DROP INDEX IF EXISTS ix_analysis_jobs_claim_order")
    op.drop_table('analysis_jobs')

    bind = op.get_bind()
    for enum_type in (
        analysis_status, analysis_method, card_type, complexity_level,
        content_domain, job_status, job_type,
    ):
        enum_type.drop(bind, checkfirst=True)
