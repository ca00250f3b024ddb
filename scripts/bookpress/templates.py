"""
Page templates.

Three templates are used: "page" for ordinary documents, "nav" for the
document that declares the nav role, and "toc" for the table of contents
synthesized when no document does. Packaged defaults live in
bookpress/templates/; a file of the same name (page.xhtml, nav.xhtml,
toc.xhtml) in the source's templates directory replaces the default.
"""

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, PackageLoader


XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'

TEMPLATE_EXTENSION = ".xhtml"


def load_templates(override_dir=None):
    """Build the template environment, preferring files in override_dir."""
    loaders = []
    if override_dir:
        loaders.append(FileSystemLoader(override_dir))
    loaders.append(PackageLoader("bookpress", "templates"))

    return Environment(
        loader=ChoiceLoader(loaders),
        autoescape=True,
        keep_trailing_newline=True,
    )


def render(env, name, data):
    """Render a named template to a complete XHTML document."""
    template = env.get_template(name + TEMPLATE_EXTENSION)
    return XML_HEADER + template.render(data)
