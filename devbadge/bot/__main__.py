from devbadge.bot.bot import run

run()
