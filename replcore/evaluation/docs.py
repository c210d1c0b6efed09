"""Documentation tables for special forms and REPL specials, and doc rendering."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..forms.types import Symbol

DOC_SEPARATOR = "-------------------------"

SPECIAL_DOC_MAP: dict[Symbol, dict[str, Any]] = {
    Symbol("."): {"forms": ["(.instanceMember instance args*)", "(.instanceMember Classname args*)",
                            "(Classname/staticMethod args*)", "Classname/staticField"],
                  "doc": "The instance member form works for methods and fields.\n  "
                         "They all expand into calls to the dot operator at macroexpansion time."},
    Symbol("ns"): {"forms": ["(name docstring? attr-map? references*)"],
                   "doc": "You must currently use the ns form only with the following caveats\n\n"
                          "    * You must use the :only form of :use\n"
                          "    * :require supports :as, :refer, and :rename\n"
                          "    * :import is available for importing Google Closure classes"},
    Symbol("def"): {"forms": ["(def symbol doc-string? init?)"],
                    "doc": "Creates and interns a global var with the name\n  "
                           "of symbol in the current namespace (*ns*) or locates such a var if\n  "
                           "it already exists.  If init is supplied, it is evaluated, and the\n  "
                           "root binding of the var is set to the resulting value.  If init is\n  "
                           "not supplied, the root binding of the var is unaffected."},
    Symbol("do"): {"forms": ["(do exprs*)"],
                   "doc": "Evaluates the expressions in order and returns the value of\n  "
                          "the last. If no expressions are supplied, returns nil."},
    Symbol("if"): {"forms": ["(if test then else?)"],
                   "doc": "Evaluates test. If not the singular values nil or false,\n  "
                          "evaluates and yields then, otherwise, evaluates and yields else. If\n  "
                          "else is not supplied it defaults to nil."},
    Symbol("new"): {"forms": ["(Constructor. args*)", "(new Constructor args*)"],
                    "url": "java_interop#new",
                    "doc": "The args, if any, are evaluated from left to right, and\n  "
                           "passed to the JavaScript constructor. The constructed object is\n  "
                           "returned."},
    Symbol("quote"): {"forms": ["(quote form)"],
                      "doc": "Yields the unevaluated form."},
    Symbol("recur"): {"forms": ["(recur exprs*)"],
                      "doc": "Evaluates the exprs in order, then, in parallel, rebinds\n  "
                             "the bindings of the recursion point to the values of the exprs.\n  "
                             "Execution then jumps back to the recursion point, a loop or fn method."},
    Symbol("set!"): {"forms": ["(set! var-symbol expr)", "(set! (.- instance-expr instanceFieldName-symbol) expr)"],
                     "url": "vars#set",
                     "doc": "Used to set vars and JavaScript object fields"},
    Symbol("throw"): {"forms": ["(throw expr)"],
                      "doc": "The expr is evaluated and thrown."},
    Symbol("try"): {"forms": ["(try expr* catch-clause* finally-clause?)"],
                    "doc": "catch-clause => (catch classname name expr*)\n  "
                           "finally-clause => (finally expr*)\n  "
                           "Catches and handles JavaScript exceptions."},
    Symbol("var"): {"forms": ["(var symbol)"],
                    "doc": "The symbol must resolve to a var, and the Var object\n"
                           "itself (not its value) is returned. The reader macro #'x expands to (var x)."},
}

REPL_SPECIAL_DOC_MAP: dict[Symbol, dict[str, Any]] = {
    Symbol("in-ns"): {"arglists": "([name])",
                      "doc": "Sets *cljs-ns* to the namespace named by the symbol, creating it if needed."},
    Symbol("load-file"): {"arglists": "([name])",
                          "doc": "Sequentially read and evaluate the set of forms contained in the file."},
    Symbol("require"): {"arglists": "([& args])",
                        "doc": "Loads libs, skipping any that are already loaded. Each argument is\n  "
                               "a quoted libspec that identifies a lib or a flag that modifies how\n  "
                               "all the identified libs are loaded. Recognized flags: :reload and\n  "
                               ":reload-all."},
    Symbol("require-macros"): {"arglists": "([& args])",
                               "doc": "Similar to the require REPL special function but\n  "
                                      "only for macros."},
    Symbol("import"): {"arglists": "([& import-symbols-or-lists])",
                       "doc": "import-list => (closure-namespace constructor-name-symbols*)\n\n  "
                              "For each name in constructor-name-symbols, adds a mapping from name to the\n  "
                              "constructor named by closure-namespace to the current namespace."},
    Symbol("doc"): {"arglists": "([name])",
                    "doc": "Prints documentation for a var or special form given its name"},
    Symbol("source"): {"arglists": "([n])",
                       "doc": "Prints the source code for the given symbol, if it can find it.\n  "
                              "This requires that the symbol resolve to a Var defined in a\n  "
                              "namespace for which the source is available."},
    Symbol("pst"): {"arglists": "([] [e])",
                    "doc": "Prints a stack trace of the exception.\n  "
                           "If none supplied, uses the root cause of the most recent repl exception (*e)"},
    Symbol("dir"): {"arglists": "([ns])",
                    "doc": "Prints a sorted directory of public vars in a namespace"},
}


def special_doc(sym: Symbol) -> Optional[dict[str, Any]]:
    entry = SPECIAL_DOC_MAP.get(sym)
    if entry is None:
        return None
    return {"name": sym, "special-form": True, **entry}


def repl_special_doc(sym: Symbol) -> Optional[dict[str, Any]]:
    entry = REPL_SPECIAL_DOC_MAP.get(sym)
    if entry is None:
        return None
    return {"name": sym, "repl-special-function": True, **entry}


def render_doc(m: Optional[Mapping[str, Any]]) -> str:
    """Render documentation for a var, namespace or special form."""
    if not m:
        return "nil"

    lines = [DOC_SEPARATOR]
    ns = m.get("ns")
    lines.append(f"{ns}/{m.get('name')}" if ns else str(m.get("name")))
    if m.get("protocol"):
        lines.append("Protocol")

    if m.get("forms"):
        lines.extend(f"   {f}" for f in m["forms"])
    elif m.get("arglists"):
        lines.append(str(m["arglists"]))

    if m.get("special-form"):
        lines.append("Special Form")
        lines.append(f"  {m.get('doc')}")
        if "url" in m:
            if m["url"]:
                lines.append(f"\n  Please see http://clojure.org/{m['url']}")
        else:
            lines.append(f"\n  Please see http://clojure.org/special_forms#{m.get('name')}")
    else:
        if m.get("macro"):
            lines.append("Macro")
        if m.get("repl-special-function"):
            lines.append("REPL Special Function")
        lines.append(f"  {m.get('doc')}")

    return "\n".join(lines) + "\n"
