"""Classes, instances, static methods and inheritance."""

from textwrap import dedent

from conftest import render


def run(runner, source: str) -> str:
    return render(runner.run(dedent(source).strip()))


# ── Declarations and instances ───────────────────────────────


def test_class_declaration_evaluates_to_class(runner):
    assert run(runner, "class Stuff {}") == "Stuff"


def test_constructing_instance(runner):
    assert run(runner, "class Stuff {}\nStuff();") == "Stuff instance"


def test_fields(runner):
    source = """
        class Stuff {}
        var s = Stuff();
        s.field = 123;
        s.field;
    """
    assert run(runner, source) == "123"


def test_function_stored_in_field(runner):
    source = """
        class Box {}

        fun notMethod(argument) {
          return "called function with " + argument;
        }

        var box = Box();
        box.function = notMethod;
        box.function("argument");
    """
    assert run(runner, source) == '"called function with argument"'


def test_field_shadows_method(runner):
    source = """
        class Stuff {
          method() {
            return 1;
          }
        }

        var s = Stuff();
        s.method = fun () { return 2; };
        s.method();
    """
    assert run(runner, source) == "2"


def test_property_on_non_instance(runner):
    assert run(runner, '"str".length;') == "Only instances have properties.\n[line 1]"


def test_setting_field_on_non_instance(runner):
    assert run(runner, "var n = 1;\nn.x = 2;") == "Only instances have fields.\n[line 2]"


def test_calling_non_callable(runner):
    assert run(runner, '"not a function"();') == (
        "Can only call functions and classes.\n[line 1]"
    )


def test_undefined_property(runner):
    assert run(runner, "class Thing {}\nThing().doesntExist;") == (
        "Undefined property `doesntExist`.\n[line 2]"
    )


# ── Methods and this ─────────────────────────────────────────


def test_method_call(runner):
    source = """
        class Bacon {
          eat() {
            return "Crunch crunch crunch!";
          }
        }

        Bacon().eat();
    """
    assert run(runner, source) == '"Crunch crunch crunch!"'


def test_this_in_method(runner, io):
    source = """
        class Cake {
          taste() {
            var adjective = "delicious";
            print "The " + this.flavor + " cake is " + adjective + "!";
          }
        }

        var cake = Cake();
        cake.flavor = "German chocolate";
        cake.taste();
    """
    assert run(runner, source) == "nil"
    assert io.lines == ["The German chocolate cake is delicious!"]


def test_bound_method_keeps_receiver(runner, io):
    source = """
        class Person {
          sayName() {
            print this.name;
          }
        }

        var jane = Person();
        jane.name = "Jane";

        var bill = Person();
        bill.name = "Bill";

        bill.sayName = jane.sayName;
        bill.sayName();
    """
    assert run(runner, source) == "nil"
    assert io.lines == ["Jane"]


def test_this_captured_by_local_function(runner, io):
    source = """
        class Thing {
          getCallback() {
            fun localFunction() {
              print this;
            }

            return localFunction;
          }
        }

        var callback = Thing().getCallback();
        callback();
    """
    assert run(runner, source) == "nil"
    assert io.lines == ["Thing instance"]


def test_method_needs_this_to_reach_sibling(runner):
    source = """
        class Thing {
          a() {
            return b();
          }

          b() {
            return 1;
          }
        }

        Thing().a();
    """
    assert run(runner, source) == "Undefined variable `b`.\n[line 3]"


def test_class_referenced_inside_own_methods(runner):
    source = """
        class Counted {
          init() {
            this.counter = 0;
          }

          clone() {
            var clone = Counted();
            clone.counter = clone.counter + this.counter + 1;
            return clone;
          }
        }

        Counted().clone().clone().clone().counter;
    """
    assert run(runner, source) == "3"


# ── Initialisers ─────────────────────────────────────────────


def test_init_receives_constructor_arguments(runner, io):
    source = """
        class Cake {
          init(adjective, flavour) {
            this.adjective = adjective;
            this.flavour = flavour;
          }

          taste() {
            print "The " + this.flavour + " cake is " + this.adjective + "!";
          }
        }

        var cake = Cake("delicious", "German chocolate");
        cake.taste();
    """
    assert run(runner, source) == "nil"
    assert io.lines == ["The German chocolate cake is delicious!"]


def test_calling_init_directly_returns_instance(runner, io):
    source = """
        class Foo {
          init() {
            print this;
          }
        }

        var foo = Foo();
        print foo.init();
    """
    assert run(runner, source) == ""
    assert io.lines == ["Foo instance", "Foo instance", "Foo instance"]


def test_early_return_from_init(runner):
    source = """
        class Stuff {
            init(earlyReturn) {
                if (earlyReturn) return;

                print this.willFailTheTestIfReached;
            }
        }
        Stuff(true);
    """
    assert run(runner, source) == "Stuff instance"


def test_default_constructor_takes_no_arguments(runner):
    assert run(runner, "class Thing {}\nThing(1, 2, 3, 4);") == (
        "Expected 0 arguments but got 4.\n[line 2]"
    )


def test_constructor_arity_follows_init(runner):
    source = """
        class Thing {
            init(a, b, c) {
                print a + b + c;
            }
        }
        Thing(1, 2);
    """
    assert run(runner, source) == "Expected 3 arguments but got 2.\n[line 6]"


def test_inherited_init_sets_arity(runner, io):
    source = """
        class A {
          init(x) { this.x = x; }
        }
        class B < A {}
        print B(7).x;
        B();
    """
    assert run(runner, source) == "Expected 1 arguments but got 0.\n[line 6]"
    assert io.lines == ["7"]


# ── Static methods ───────────────────────────────────────────


def test_static_method(runner):
    source = """
        class Maths {
          class square(n) { return n * n; }
        }
        Maths.square(3);
    """
    assert run(runner, source) == "9"


def test_static_method_calls_static_method(runner):
    source = """
        class Maths {
          class square(n) { return n * n; }
          class cube(n) { return Maths.square(n) * n; }
        }
        Maths.cube(3);
    """
    assert run(runner, source) == "27"


def test_static_and_instance_method_with_same_name(runner):
    source = """
        class Stuff {
          class a() { return "static call "; }
          a() { return "instance call"; }
        }
        Stuff.a() + Stuff().a();
    """
    assert run(runner, source) == '"static call instance call"'


def test_instance_method_is_not_static(runner):
    source = """
        class Thing {
          nope() { return "hi"; }
        }
        Thing.nope();
    """
    assert run(runner, source) == "Undefined property `nope`.\n[line 4]"


def test_static_method_is_inherited(runner):
    source = """
        class A {
          class make() { return "made"; }
        }
        class B < A {}
        B.make();
    """
    assert run(runner, source) == '"made"'


# ── Inheritance ──────────────────────────────────────────────


def test_inherited_method(runner, io):
    source = """
        class Doughnut {
          cook() {
            print "Fry until golden brown.";
          }
        }

        class BostonCream < Doughnut {}

        BostonCream().cook();
    """
    assert run(runner, source) == "nil"
    assert io.lines == ["Fry until golden brown."]


def test_super_binds_to_defining_class(runner, io):
    source = """
        class A {
          method() {
            print "A method";
          }
        }

        class B < A {
          method() {
            print "B method";
          }

          test() {
            super.method();
          }
        }

        class C < B {}

        C().test();
    """
    assert run(runner, source) == "nil"
    assert io.lines == ["A method"]


def test_super_method_sees_subclass_this(runner):
    source = """
        class A {
          first() {
            return this.second();
          }
        }

        class B < A {
          first() {
            return super.first();
          }

          second() {
            return "this is kind of weird but ok";
          }
        }

        B().first();
    """
    assert run(runner, source) == '"this is kind of weird but ok"'


def test_superclass_must_be_class(runner):
    source = """
        var NotAClass = "I am totally not a class";

        class Subclass < NotAClass {}
    """
    assert run(runner, source) == "Superclass must be a class.\n[line 3]"


def test_super_missing_method(runner):
    source = """
        class A {}
        class B < A {
          m() { return super.nothing(); }
        }
        B().m();
    """
    assert run(runner, source) == "Undefined property `nothing`.\n[line 3]"


def test_local_class_with_superclass(runner, io):
    source = """
        fun build() {
          class Base {
            hello() { return "hello from base"; }
          }
          class Derived < Base {
            hello() { return super.hello() + "!"; }
          }
          return Derived;
        }
        print build()().hello();
    """
    assert run(runner, source) == ""
    assert io.lines == ["hello from base!"]
