import os
import html
import urllib.parse
from typing import Iterable, List, NamedTuple


HTML_PRELUDE = '''<!DOCTYPE html>
<html lang="en">
    <head>
        <meta charset="utf-8" />
        <meta name="viewport" content="width=device-width, initial-scale=1.0" />
        <title>ts-fileserver</title>
        <link rel="stylesheet" href="https://cdn.jsdelivr.net/npm/sakura.css/css/sakura.css" type="text/css">
    </head>
<body>
'''

UPLOAD_FORM = '''
<script>
async function upload() {
    const input = document.getElementById("file")
    const base = window.location.pathname.replace(/\\/+$/, "")
    for (const file of input.files) {
        const {name} = file
        const url = base + "/" + encodeURIComponent(name)
        const xhr = new XMLHttpRequest()
        xhr.open('POST', url, true)
        xhr.upload.onprogress = function(event) {
            if (event.lengthComputable) {
                const percentComplete = (event.loaded / event.total) * 100;
                document.getElementById("status").innerText = (name + ": " + percentComplete.toFixed(2) + "%");
            }
        };
        xhr.onload = function() {
            if (xhr.status != 200) {
                document.getElementById("status").innerText = (name + ": " + xhr.responseText);
            }
        };
        xhr.send(file)
    }
    document.getElementById("status").innerText = "Finished"
}
</script>

<input type="file" id="file" multiple /><button onclick="upload()">Upload</button>
<p id="status"></p>
'''

HTML_EPILOGUE = '''</ul>
</body>
</html>
'''


class DirectoryEntry(NamedTuple):
	name: str
	href: str


def build_entries(url_path:str, names:Iterable[str]) -> List[DirectoryEntry]:
	"""Links every name relative to the (still percent-encoded) url path of the listed directory"""
	base = url_path.rstrip('/')
	entries = []
	for name in sorted(names):
		entries.append(DirectoryEntry(name, '%s/%s' % (base, urllib.parse.quote(name, errors='surrogateescape'))))
	return entries

def render_listing(directory:str, entries:Iterable[DirectoryEntry], writable:bool = False) -> str:
	parts = [HTML_PRELUDE]
	if writable is True:
		parts.append(UPLOAD_FORM)
	parts.append('<h1>Files in %s</h1>\n' % html.escape(directory))
	parts.append('<ul>\n')
	for entry in entries:
		parts.append('<li><a href="%s">%s</a></li>\n' % (html.escape(entry.href), html.escape(entry.name)))
	parts.append(HTML_EPILOGUE)
	return ''.join(parts)

def list_directory(path:str) -> List[str]:
	"""Names of the immediate children of `path`, raises OSError"""
	with os.scandir(path) as it:
		return [entry.name for entry in it]
