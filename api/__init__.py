"""HTTP control surface for the Supabase to Better Auth migration."""
