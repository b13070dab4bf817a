from devbadge.api.main import run

run()
