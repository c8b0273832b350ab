from migrations.sql_to_mongo.cli import app

app(prog_name="python -m migrations.sql_to_mongo")
