# peershare

peershare shares the files in a folder with a small cluster of peers. Each node
uses UDP to find peers and to locate files. It uses TCP to move the files.

## Installation

```
pip install .
```

To install the test dependencies as well:

```
pip install .[test]
```

## Running a node

```
peershare
```

The command first asks two questions:

- **Shared folder.** This is the directory to share. The default is `./shared`. The directory must already exist.
- **Peer addresses.** Enter them one at a time in `IP:Port` form. An entry without a `:` is rejected. Press Enter on an empty line to finish.

You can skip the questions, for example in a container. To do so, set both `P2P_FOLDER` and `P2P_CLUSTER`. `P2P_CLUSTER` is a comma-separated list of addresses, and empty entries are dropped:

```
P2P_FOLDER=./shared P2P_CLUSTER=127.0.0.1:1378,127.0.0.1:1379 peershare
```

While the node runs, it shows a numbered menu. Type the number of an option or its full name:

1. **List cluster members.** Shows a table of every peer the node knows about.
2. **Download a file.** Asks the cluster for a file by name. If a peer holds the file, it answers with its TCP port and the node downloads the file from that peer.
3. **Ping peers.** Sends a discovery broadcast at once and waits two seconds. It then reports any new peers and lists the members.
4. **Quit.** Stops all services and shuts the node down. End of input or Ctrl+C also quits.

In the background, the node sends its member list to every known peer once per discovery period. It adds any new addresses that other peers announce.

## Configuration

The built-in defaults are:

```yaml
host: 127.0.0.1
port: 1378
period: 20     # seconds between discovery broadcasts
waiting: 100   # seconds to wait for an answer to a file request
```

The node looks for a `config.yml` or `config.yaml` file, first in the current directory and then in `./configs`. The first file it finds overrides the defaults. The environment variables `P2P_HOST`, `P2P_PORT`, `P2P_PERIOD` and `P2P_WAITING` override both the defaults and the file.

From code, call `peershare.config.read_config(search_dirs, environ)` to build a `Config`. The `search_dirs` and `environ` arguments are optional.

## Library use

You can use the pieces on their own:

```python
from peershare.message import Get, unmarshal
from peershare.cluster import Cluster

wire = Get(name="report.pdf").marshal()   # "Get,report.pdf\n"
msg = unmarshal(wire)                     # Get(name="report.pdf")

cluster = Cluster(["127.0.0.1:1378"])
cluster.merge("127.0.0.1:1000", ["10.0.0.1:1380"])
print(cluster.members(), len(cluster))
```

The modules in the package:

- `peershare.message`: `Discover`, `Get` and `File` messages and `unmarshal()`. Malformed input raises a subclass of `MessageError`.
- `peershare.cluster`: `Cluster`, a thread-safe list of peer addresses.
- `peershare.udp_server`: `UDPServer`, which handles discovery and file lookups.
- `peershare.tcp_server`: `TCPServer`, which serves files from the shared folder.
- `peershare.tcp_client`: `TCPClient`, which downloads files into the shared folder.
- `peershare.node`: `Node`, which ties these services to the menu.

## Protocol

UDP messages are single comma-separated lines:

- `DISCOVER,<addr>,<addr>,...` shares the sender's list of known peers.
- `Get,<name>` asks the cluster for a file. Only the last path element of the name is used.
- `File,<method>,<tcp-port>` says that the sender has the file. The method is always `1`, which means TCP.

A TCP transfer works like this:

1. The client sends a `Get,<name>` line.
2. The server replies with the file size, padded with `:` to 10 bytes.
3. Next comes the file name, padded with `:` to 64 bytes and cut off at that length.
4. The file contents follow.

The client writes the data to `downloading_<name>` in the shared folder. When the transfer ends, it renames the file to `<name>`.

A node remembers each peer that has answered one of its file requests. Suppose a peer that holds the file later gets a request from one of those remembered peers. In that case it answers at once. It waits 10 seconds before answering any other peer. The first answer that arrives is the one used.

## Limitations

- A download is not checked for integrity. If the connection closes early, a warning is logged and the short file is still kept under its final name.
- Downloads do not resume, and only one file request runs at a time.
- Because the size field is 10 bytes wide, files must be smaller than 10 GB.
- There is no authentication or encryption. Any host that can reach the ports can list and fetch files from the shared folder.