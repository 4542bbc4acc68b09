from types import SimpleNamespace

from rich.pretty import pprint

from oberst import *

hello = command("hello", descr="greets someone, possibly several times")


@hello.variant
def hello_world(context):
    print("Hello, %s!" % context.name)


@hello.variant
def hello_from(context, sender: str):
    print("Hello, %s! (from %s)" % (context.name, sender))


@hello.variant("<times> times")
def hello_many(context, times: "u64"):
    for _ in range(times):
        print("Hello, %s!" % context.name)


source = CommandSource(SimpleNamespace(name="Herbert"), name="hello", colorful=True)
source.register(hello)


if __name__ == '__main__':
    pprint(source)
    raise SystemExit(source.interact())
