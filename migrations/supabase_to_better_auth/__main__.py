from migrations.supabase_to_better_auth.cli import app

app()
