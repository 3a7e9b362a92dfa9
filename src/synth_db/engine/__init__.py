from synth_db.engine.sql_engine import Engine, ExecutionResult, SqlEngine
