from rich.pretty import pprint

from quiver import *

resolver = Resolver(
    Argument("target", Choice(["alice", "bob", "carol"], "player")),
    Argument("amount", Integer(), required=False, default=1, minimum=1, maximum=64),
    Argument("reason", required=False, greedy=True),
    name="give",
    switches=[Switch("silent", "s", "silent")],
    options=[Option("world", Choice(["overworld", "nether", "end"], "world"))],
)


if __name__ == '__main__':
    pprint(resolver)
    pprint(resolver.resolve('bob 16 --silent world=nether "for the build"'))
    pprint(resolver.resolve("bobb 100", options=ParseOptions.LENIENT).errors)
