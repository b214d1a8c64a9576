"""initial schema: usuario, bloqueo, disponibilidad, turno, pago, recordatorio

Revision ID: mediturnos_0001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

revision = 'mediturnos_0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'usuario',
        sa.Column('ID', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('nombre', sa.String(), nullable=True),
        sa.Column('apellido', sa.String(), nullable=True),
        sa.Column('rol', sa.String(), nullable=False),
        sa.Column('especialidad', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('ID')
    )
    op.create_index('ix_usuario_email', 'usuario', ['email'], unique=True)

    op.create_table(
        'bloqueo',
        sa.Column('ID', sa.Integer(), nullable=False),
        sa.Column('profesional_ID', sa.Integer(), nullable=False),
        sa.Column('paciente_ID', sa.Integer(), nullable=False),
        sa.Column('motivo', sa.Text(), nullable=True),
        sa.Column('fecha', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.ForeignKeyConstraint(['profesional_ID'], ['usuario.ID']),
        sa.ForeignKeyConstraint(['paciente_ID'], ['usuario.ID']),
        sa.PrimaryKeyConstraint('ID'),
        sa.UniqueConstraint('profesional_ID', 'paciente_ID', name='uq_bloqueo_par')
    )
    op.create_index('ix_bloqueo_profesional_ID', 'bloqueo', ['profesional_ID'])
    op.create_index('ix_bloqueo_paciente_ID', 'bloqueo', ['paciente_ID'])

    op.create_table(
        'disponibilidad',
        sa.Column('ID', sa.Integer(), nullable=False),
        sa.Column('profesional_ID', sa.Integer(), nullable=False),
        sa.Column('dia_semana', sa.Integer(), nullable=False),
        sa.Column('hora_inicio', sa.Time(), nullable=False),
        sa.Column('hora_fin', sa.Time(), nullable=False),
        sa.ForeignKeyConstraint(['profesional_ID'], ['usuario.ID']),
        sa.PrimaryKeyConstraint('ID')
    )
    op.create_index('idx_disponibilidad_profesional_dia', 'disponibilidad', ['profesional_ID', 'dia_semana'])

    op.create_table(
        'turno',
        sa.Column('ID', sa.Integer(), nullable=False),
        sa.Column('paciente_ID', sa.Integer(), nullable=False),
        sa.Column('profesional_ID', sa.Integer(), nullable=False),
        sa.Column('fecha', sa.Date(), nullable=True),
        sa.Column('hora_inicio', sa.Time(), nullable=True),
        sa.Column('hora_fin', sa.Time(), nullable=True),
        sa.Column('tipo', sa.String(), nullable=False),
        sa.Column('estado', sa.String(), nullable=False),
        sa.Column('express_aceptado', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.ForeignKeyConstraint(['paciente_ID'], ['usuario.ID']),
        sa.ForeignKeyConstraint(['profesional_ID'], ['usuario.ID']),
        sa.PrimaryKeyConstraint('ID')
    )
    op.create_index('ix_turno_paciente_ID', 'turno', ['paciente_ID'])
    op.create_index('ix_turno_profesional_ID', 'turno', ['profesional_ID'])
    op.create_index('idx_turno_profesional_fecha', 'turno', ['profesional_ID', 'fecha'])
    op.create_index(
        'uq_turno_profesional_inicio', 'turno', ['profesional_ID', 'fecha', 'hora_inicio'],
        unique=True,
        postgresql_where=sa.text("estado <> 'cancelled'"),
        sqlite_where=sa.text("estado <> 'cancelled'"),
    )

    op.create_table(
        'pago',
        sa.Column('ID', sa.Integer(), nullable=False),
        sa.Column('turno_ID', sa.Integer(), nullable=False),
        sa.Column('monto', sa.Integer(), nullable=False),
        sa.Column('estado', sa.String(), nullable=False),
        sa.Column('fecha', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.ForeignKeyConstraint(['turno_ID'], ['turno.ID']),
        sa.PrimaryKeyConstraint('ID'),
        sa.UniqueConstraint('turno_ID')
    )

    op.create_table(
        'recordatorio',
        sa.Column('turno_ID', sa.Integer(), nullable=False),
        sa.Column('fecha_envio', sa.DateTime(timezone=True), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('hora_envio', sa.Time(), nullable=False),
        sa.Column('mensaje', sa.String(), nullable=False),
        sa.Column('enviado', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['turno_ID'], ['turno.ID']),
        sa.PrimaryKeyConstraint('turno_ID')
    )
    op.create_index('ix_recordatorio_fecha_envio', 'recordatorio', ['fecha_envio'])


def downgrade():
    op.drop_index('ix_recordatorio_fecha_envio', table_name='recordatorio')
    op.drop_table('recordatorio')
    op.drop_table('pago')
    op.drop_index('uq_turno_profesional_inicio', table_name='turno')
    op.drop_index('idx_turno_profesional_fecha', table_name='turno')
    op.drop_index('ix_turno_profesional_ID', table_name='turno')
    op.drop_index('ix_turno_paciente_ID', table_name='turno')
    op.drop_table('turno')
    op.drop_index('idx_disponibilidad_profesional_dia', table_name='disponibilidad')
    op.drop_table('disponibilidad')
    op.drop_index('ix_bloqueo_paciente_ID', table_name='bloqueo')
    op.drop_index('ix_bloqueo_profesional_ID', table_name='bloqueo')
    op.drop_table('bloqueo')
    op.drop_index('ix_usuario_email', table_name='usuario')
    op.drop_table('usuario')
