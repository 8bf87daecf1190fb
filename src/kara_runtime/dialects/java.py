"""JavaKara: ``void myProgram()`` inside any class, camelCase vocabulary."""

from __future__ import annotations

import re

from kara_runtime.dialects.braces import BraceDialect

TEMPLATE = """import javakara.JavaKaraProgram;

/*
 * COMMANDS:
 *   kara.move()             kara.turnRight()        kara.turnLeft()
 *   kara.putLeaf()          kara.removeLeaf()
 * SENSORS:
 *   kara.treeFront()        kara.treeLeft()         kara.treeRight()
 *   kara.mushroomFront()    kara.onLeaf()
 */
public class MyProgram extends JavaKaraProgram {
    //
    // you can define your methods here:
    //
    public void myProgram() {
        // put your main program here, for example:
        while (!kara.treeFront()) {
            kara.move();
        }
    }
}
"""


class JavaKara(BraceDialect):
    name = "JavaKara"
    extensions = (".java",)
    entry_name = "myProgram"
    entry_construct = "void myProgram()"
    example = "void myProgram() {\n  kara.move();\n}"
    template = TEMPLATE
    entry_pattern = re.compile(r"\bvoid\s+myProgram\s*\(\s*\)\s*\{")
    forbidden_names = frozenset(
        {
            "System",
            "Runtime",
            "Thread",
            "Class",
            "ClassLoader",
            "getClass",
            "forName",
            "getRuntime",
            "reflect",
            "invoke",
            "ProcessBuilder",
            "java",
            "javax",
            "import",
            "new",
            "native",
        }
    )
