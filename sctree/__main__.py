from sctree.cli import app

app(prog_name="sctree")
