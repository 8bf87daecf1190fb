"""JavaScriptKara: ``function myProgram()``, camelCase vocabulary, optional semicolons."""

from __future__ import annotations

import re

from kara_runtime.dialects.braces import BraceDialect

TEMPLATE = """// JavaScriptKara Program

/*
 * COMMANDS:
 *   kara.move()             kara.turnRight()        kara.turnLeft()
 *   kara.putLeaf()          kara.removeLeaf()
 * SENSORS:
 *   kara.treeFront()        kara.treeLeft()         kara.treeRight()
 *   kara.mushroomFront()    kara.onLeaf()
 */

function myProgram() {
    // put your main program here, for example:
    while (!kara.treeFront()) {
        kara.move();
    }
}
"""


class JavaScriptKara(BraceDialect):
    name = "JavaScriptKara"
    extensions = (".js",)
    entry_name = "myProgram"
    entry_construct = "function myProgram()"
    example = "function myProgram() {\n  kara.move();\n}"
    template = TEMPLATE
    entry_pattern = re.compile(r"\bfunction\s+myProgram\s*\(\s*\)\s*\{")
    statement_end = '";"?'
    forbidden_names = frozenset(
        {
            "self",
            "this",
            "new",
            "import",
            "arguments",
            "document",
            "navigator",
            "location",
            "Object",
            "Reflect",
            "Proxy",
            "Symbol",
            "defineProperty",
            "setPrototypeOf",
            "getPrototypeOf",
            "__defineGetter__",
            "__defineSetter__",
            "Worker",
            "WebSocket",
            "XMLHttpRequest",
            "indexedDB",
            "sessionStorage",
            "setInterval",
            "setImmediate",
            "requestAnimationFrame",
            "queueMicrotask",
        }
    )
