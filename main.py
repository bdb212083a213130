from rich.pretty import pprint

from argbind import *

__prog__ = "demo"

verbose = Slot(False)
count = Slot(1)
files = []

parser = Parser(on_missing=MissingParameterPolicy.REPORT, on_unknown=UnknownTokenPolicy.REPORT, fancy=True)
parser.add_presence_flag("verbose", verbose)
parser.add_presence_flag("v", verbose)
parser.add_valued_flag("count", count, int)
parser.collect_positionals(files)


if __name__ == '__main__':
    outcome = parser.run()
    pprint(parser)
    pprint({"verbose": verbose.value, "count": count.value, "files": files, "ok": outcome.ok})
