from nhncloud_mcp.server import main

main()
