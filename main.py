from rich import print
from rich.pretty import pprint

from safenames import *


def move(self, dx, dy):
    getattr(getattr(self.origin, "$x")(self.origin.x + dx), "$y")(self.origin.y + dy)
    return self


shape = (
    builder(name="Shape")
        .property("origin", {"x": 0, "y": 0})
        .property("tags", ["shape"])
        .method("move", move)
        .constant("SIDES", 0)
        .done()
)

square = (
    builder(shape, name="Square")
        .property("side", 1)
        .nested("style")
            .property("fill", "black")
        .done()
        .constant("SIDES", 4, {"enumerable": True})
)


if __name__ == '__main__':
    print(square)
    Square = square.constructor(lambda self, side=1: getattr(self, "$side")(side))
    pprint(Square(3).move(1, 2))
